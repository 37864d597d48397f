"""
Configuration constants to replace magic numbers throughout sharpjava
"""

import os
import tempfile

# Emission
INDENT_UNIT = "    "  # One nesting level in emitted Java
TARGET_FILE_EXTENSION = ".java"
DEFAULT_OUTPUT_NAME = "output.java"

# IR limits (recursive passes must stay well below the interpreter's recursion limit)
MAX_NESTING_DEPTH = 200

# Integer folding bounds (32-bit two's complement, shared by C# and Java)
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

# Front end
DEFAULT_SOURCE_NAME = "<input>"
UNKNOWN_TYPE = "object"  # Tag for names the front end cannot resolve
DEFAULT_PARSER_CACHE_FILE = os.path.join(tempfile.gettempdir(), "sharpjava_parser.cache")

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"

# Environment switches
DUMP_IR_PER_PASS_ENV = "SHARPJAVA_DUMP_IR_PER_PASS"
COLOR_ENV = "SHARPJAVA_COLOR"
