"""SSA intermediate language structures and helpers with a WDC 65816 assembly back end."""

__version__ = "0.1.0"