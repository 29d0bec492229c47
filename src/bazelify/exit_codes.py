from __future__ import annotations

OK = 0
ERR_USAGE = 2
ERR_MANIFEST = 3
ERR_AMBIGUOUS = 4
ERR_RESOLUTION = 5
ERR_CONFIG = 6
ERR_DRIFT = 10
ERR_INTERNAL = 99
