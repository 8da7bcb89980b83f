[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "snesil"
version = "0.1.0"
description = "SSA intermediate language toolkit with a WDC 65816 (SNES) assembly back end"
requires-python = ">=3.10"
dependencies = []
keywords = ["compiler", "ssa", "intermediate-representation", "65816", "snes", "code-generation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Compilers",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
snesil-lexhash = "snesil.lexhash:main"
snesil-debruijn = "snesil.debruijn:main"

[tool.hatch.build.targets.wheel]
packages = ["snesil"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
