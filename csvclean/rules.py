"""
Deterministic cleaning rules.

This file exists to make defaults and naming conventions explicit.
"""

DEFAULT_DELIMITER = ","
DEFAULT_ENCAPSULATION = '"'
DEFAULT_PERMISSIONS = 0o666
DEFAULT_ENCODING = "utf-8"
AUTO_ENCODING = "auto"

TAB_ALIAS = "\\t"  # two characters: backslash, t
READ_QUOTECHAR = '"'
FORBIDDEN_MARKERS = ('"', "\r", "\n")

CLEAN_SUFFIX = "_clean"
TEMP_PREFIX = "csvclean."
DETECTION_SAMPLE_BYTES = 64 * 1024

# Bytes that do not decode are carried through to the output unchanged.
TEXT_ERRORS = "surrogateescape"
