"""Utility functions for PE report output and formatting."""
import datetime
import math
import sys

from typing import List

from peanalyzer.config import pefile


def shannon_entropy(data: bytes) -> float:
    """Compute the Shannon entropy of a byte sequence.

    Returns a value between 0.0 (uniform) and 8.0 (maximum randomness).
    Returns 0.0 for empty input.
    """
    length = len(data)
    if length == 0:
        return 0.0
    byte_counts = [0] * 256
    for b in data:
        byte_counts[b] += 1
    entropy = 0.0
    for count in byte_counts:
        if count > 0:
            p = count / length
            entropy -= p * math.log2(p)
    return entropy


def safe_print(text_to_print, file=None):
    try:
        print(text_to_print, file=file)
    except UnicodeEncodeError:
        stream = file if file is not None else sys.stdout
        try:
            output_encoding = stream.encoding if stream.encoding else 'utf-8'
            encoded_text = str(text_to_print).encode(output_encoding, errors='backslashreplace').decode(output_encoding, errors='ignore')
            print(f"{encoded_text} (some characters replaced/escaped)", file=file)
        except Exception:
            print("<Unencodable string: contains characters not supported by output encoding>", file=file)


def format_timestamp(timestamp_val: int) -> str:
    if not isinstance(timestamp_val, int) or timestamp_val < 0: return f"{timestamp_val} (Invalid timestamp value)"
    if timestamp_val == 0: return "0 (No timestamp or invalid)"
    current_year = datetime.datetime.now(datetime.timezone.utc).year
    try:
        dt_obj = datetime.datetime.fromtimestamp(timestamp_val, datetime.timezone.utc)
        formatted_date = dt_obj.strftime('%Y-%m-%d %H:%M:%S UTC')
        if dt_obj.year > current_year + 20 or dt_obj.year < 1980:
            return f"{formatted_date} ({timestamp_val}) (Timestamp unusual)"
        return formatted_date
    except (ValueError, OSError, OverflowError):
        return f"{timestamp_val} (Invalid or out-of-range timestamp value)"


def _flag_names(flags: int, table) -> List[str]:
    names = []
    for flag_name, flag_val in table.items():
        if isinstance(flag_name, str) and isinstance(flag_val, int) and (flags & flag_val):
            names.append(flag_name)
    return names if names else ["NONE"]


def get_file_characteristics(flags: int) -> List[str]:
    return _flag_names(flags, pefile.IMAGE_CHARACTERISTICS)


def get_dll_characteristics(flags: int) -> List[str]:
    return _flag_names(flags, pefile.DLL_CHARACTERISTICS)


def get_section_characteristics(flags: int) -> List[str]:
    return _flag_names(flags, pefile.SECTION_CHARACTERISTICS)
