"""
Central configuration, imports, availability flags, and constants.

All optional library imports and their availability flags are managed here.
Other modules import what they need from this module.
"""
import os
import sys
import logging

from pathlib import Path

from peanalyzer import __version__
from peanalyzer.user_config import get_config_value, get_int_config_value

# --- Ensure pefile is available (Critical Dependency) ---
try:
    import pefile
except ImportError:
    print("[!] CRITICAL ERROR: The 'pefile' library is not found.", file=sys.stderr)
    print("[!] This library is essential for the script to function.", file=sys.stderr)
    print("[!] Install it with: pip install pefile", file=sys.stderr)
    sys.exit(1)

PACKAGE_DIR = Path(__file__).resolve().parent
DATA_DIR = Path(os.getenv("PEANALYZER_DATA_DIR", PACKAGE_DIR / "data"))

# --- Optional Library Imports & Availability Flags ---
PIL_AVAILABLE = False
PIL_IMPORT_ERROR = None
try:
    import PIL
    PIL_AVAILABLE = True
except ImportError as e:
    PIL_IMPORT_ERROR = str(e)

ICOEXTRACT_AVAILABLE = False
ICOEXTRACT_IMPORT_ERROR = None
try:
    import icoextract
    ICOEXTRACT_AVAILABLE = True
except ImportError as e:
    ICOEXTRACT_IMPORT_ERROR = str(e)

# --- Logging Setup ---
logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(levelname)s - %(name)s - %(message)s')
logger = logging.getLogger("PeAnalyzer")
_log_level = logging.getLevelName((get_config_value("log_level") or "WARNING").upper())
logger.setLevel(_log_level if isinstance(_log_level, int) else logging.WARNING)


class OutputConflictError(OSError):
    """Output file name is empty or the file already exists."""


class ImageEncodingError(OSError):
    """The composite image could not be encoded or written."""


def _check_lib(lib_name: str, available: bool, feature: str, pip_name: str = None):
    """Raise RuntimeError if a required library is not installed."""
    if not available:
        pkg = pip_name or lib_name
        raise RuntimeError(
            f"[{feature}] The '{lib_name}' library is not installed. "
            f"Install with: pip install {pkg}"
        )


# --- Banners ---
TITLE = "PeAnalyzer\n"

VERSION_TEXT = f"""version: {__version__}
author: PeAnalyzer developers
last update: 18. Oct 2026"""

USAGE = """usage:
 peanalyzer -v
 peanalyzer -h
 peanalyzer [-o <outfile>] [-p <imagefile>] [-i <folder>] <PEfile>

 -h,--help          show help
 -v,--version       show version
 -o,--output        write report to output file
 -p,--picture       write image representation of the PE to output file
 -i,--ico           extract all icons from the resource section
"""

END_OF_REPORT = "--- end of report ---"

# --- File-type signatures ---
FILETYPE_DB_PATH = Path(get_config_value("filetype_db") or DATA_DIR / "filetypes.txt")

# --- Visualizer defaults ---
DEFAULT_PIXEL_SIZE = get_int_config_value("pixel_size", 4)
DEFAULT_BYTEPLOT_PIXEL_SIZE = get_int_config_value("byteplot_pixel_size", 1)
DEFAULT_COLUMNS = get_int_config_value("columns", 16)
DEFAULT_IMAGE_HEIGHT = get_int_config_value("image_height", 500)
