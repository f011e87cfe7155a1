"""PE signature check and file-type signature scanning."""
import re
import struct

from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple, Union

from peanalyzer.config import logger, FILETYPE_DB_PATH

PE_SIGNATURE = b'PE\x00\x00'
_E_LFANEW_OFFSET = 0x3C


def has_pe_signature(filepath: Union[str, Path]) -> bool:
    """True if the MS-DOS header points at a ``PE\\0\\0`` signature."""
    try:
        with open(filepath, 'rb') as f:
            dos_header = f.read(0x40)
            if len(dos_header) < 0x40 or dos_header[:2] != b'MZ':
                return False
            e_lfanew = struct.unpack_from('<I', dos_header, _E_LFANEW_OFFSET)[0]
            f.seek(e_lfanew)
            return f.read(4) == PE_SIGNATURE
    except OSError as e:
        logger.warning(f"Could not read PE signature of {filepath}: {e}")
        return False


def parse_signature_file(db_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load ``[name]`` / ``signature = ..`` blocks from a PEiD-style database.

    Each signature is a dict with ``name`` and ``pattern_bytes``, a list of
    byte values where ``None`` stands for a ``??`` wildcard.
    """
    signatures = []
    current_signature: Optional[Dict[str, Any]] = None
    try:
        with open(db_path, 'r', encoding='utf-8', errors='ignore') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith(';'): continue
                name_match = re.match(r'^\[(.*)\]$', line)
                if name_match:
                    current_signature = {'name': name_match.group(1).strip(), 'pattern_bytes': []}
                    continue
                sig_match = re.match(r'^signature\s*=\s*(.*)', line, re.IGNORECASE)
                if current_signature and sig_match:
                    byte_pat_list: List[Optional[int]] = []
                    for b_str in sig_match.group(1).strip().upper().split():
                        if b_str == '??':
                            byte_pat_list.append(None)
                        elif len(b_str) == 2 and all(c in '0123456789ABCDEF' for c in b_str):
                            byte_pat_list.append(int(b_str, 16))
                        else:
                            logger.warning(f"Invalid byte '{b_str}' in signature '{current_signature['name']}' ({db_path}:{line_num}), skipping it.")
                            byte_pat_list = []
                            break
                    if any(b is not None for b in byte_pat_list):
                        current_signature['pattern_bytes'] = byte_pat_list
                        signatures.append(current_signature)
                    current_signature = None
    except OSError as e:
        logger.error(f"File-type signature DB could not be read: {db_path}: {e}")
        return []
    logger.debug(f"Loaded {len(signatures)} file-type signatures from {db_path}.")
    return signatures


def bytes_matched(signature: Dict[str, Any]) -> int:
    """Number of concrete (non-wildcard) bytes a signature checks."""
    return sum(1 for b in signature['pattern_bytes'] if b is not None)


def _pattern_matches(pattern_bytes: List[Optional[int]], data: bytes) -> bool:
    if len(data) < len(pattern_bytes):
        return False
    return all(expected is None or data[i] == expected for i, expected in enumerate(pattern_bytes))


class FileTypeScanner:
    """Matches the bytes of a file against the file-type signature database."""

    def __init__(self, filepath: Union[str, Path], db_path: Optional[Union[str, Path]] = None):
        self.filepath = filepath
        self.signatures = parse_signature_file(db_path or FILETYPE_DB_PATH)

    def scan_at(self, offset: int = 0) -> List[Tuple[Dict[str, Any], int]]:
        """Return ``(signature, offset)`` for every signature matching at *offset*.

        Results are ranked by the number of matched bytes, most specific first.
        """
        if not self.signatures:
            return []
        max_len = max(len(sig['pattern_bytes']) for sig in self.signatures)
        with open(self.filepath, 'rb') as f:
            f.seek(offset)
            data = f.read(max_len)
        results = [(sig, offset) for sig in self.signatures if _pattern_matches(sig['pattern_bytes'], data)]
        results.sort(key=lambda result: (-bytes_matched(result[0]), result[0]['name']))
        return results
