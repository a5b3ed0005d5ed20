"""Fixed parameters of the gauge subsystem."""

# Samples held per gauge before a flush is forced
MAX_BUFFER = 1000

# Interpolation falls back to the containing cell when any stencil depth
# is below DRY_TOLERANCE_FACTOR * dry_tolerance
DRY_TOLERANCE_FACTOR = 0.1

# Output values smaller than this in magnitude are written as zero
TINY_VALUE = 1e-90

# Output file naming: gauge00042.txt
FILE_PREFIX = "gauge"
FILE_SUFFIX = ".txt"
GAUGE_ID_WIDTH = 5
MAX_GAUGE_ID = 10**GAUGE_ID_WIDTH - 1

# File format codes
ASCII_FORMAT = 1
SUPPORTED_FILE_FORMATS = (ASCII_FORMAT,)

DEFAULT_DISPLAY_FORMAT = "e15.7"
