"""WDC 65816 (SNES) back end: target, stack ABI, pass-through selection, assembly emission."""