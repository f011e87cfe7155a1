"""PE report generation - headers, sections, imports, exports, and more."""
import os
import hashlib

from typing import Dict, Any, List, Callable

from peanalyzer.config import logger, pefile
from peanalyzer.utils import (
    safe_print, format_timestamp,
    get_file_characteristics, get_dll_characteristics, get_section_characteristics,
)

ReportLines = List[str]


def _decode(raw, encoding: str = 'utf-8') -> str:
    if raw is None:
        return "N/A"
    if isinstance(raw, bytes):
        return raw.decode(encoding, 'ignore').rstrip('\x00')
    return str(raw)


def _format_value(value: Any) -> str:
    if isinstance(value, int):
        return hex(value)
    if isinstance(value, bytes):
        return _decode(value)
    return str(value)


def _struct_lines(dump_dict: Dict[str, Any], indent: int = 1) -> ReportLines:
    """Flatten a pefile ``dump_dict()`` into ``name: value`` lines."""
    prefix = "  " * indent
    lines = []
    for key, field in dump_dict.items():
        if key == "Structure": continue
        value = field.get("Value") if isinstance(field, dict) else field
        lines.append(f"{prefix}{key:<30} {_format_value(value)}")
    return lines


def _safe_block(title: str, func: Callable[[pefile.PE], ReportLines], pe: pefile.PE) -> str:
    """Render one titled report block. A failing block reports its error instead
    of aborting the report, so malformed binaries still get partial output."""
    try:
        lines = func(pe)
    except Exception as e:
        logger.warning(f"Report block '{title}' failed: {type(e).__name__}: {e}")
        lines = [f"  {title} could not be parsed: {type(e).__name__}: {e}"]
    return "\n".join([f"--- {title} ---"] + lines) + "\n\n"


# --- Header reports ---
def _dos_header_lines(pe: pefile.PE) -> ReportLines:
    if getattr(pe, 'DOS_HEADER', None) is None: return ["  DOS Header not found or malformed."]
    return _struct_lines(pe.DOS_HEADER.dump_dict())


def _file_header_lines(pe: pefile.PE) -> ReportLines:
    fh = pe.FILE_HEADER
    lines = [f"  {'Signature':<30} {hex(pe.NT_HEADERS.Signature)}"]
    lines += _struct_lines(fh.dump_dict())
    lines.append(f"  {'TimeDateStamp (formatted)':<30} {format_timestamp(fh.TimeDateStamp)}")
    lines.append(f"  {'Characteristics flags':<30} {', '.join(get_file_characteristics(fh.Characteristics))}")
    return lines


def _pe_type(pe: pefile.PE) -> str:
    magic = getattr(getattr(pe, 'OPTIONAL_HEADER', None), 'Magic', None)
    if magic == pefile.OPTIONAL_HEADER_MAGIC_PE:
        return "PE32 (32-bit)"
    if magic == pefile.OPTIONAL_HEADER_MAGIC_PE_PLUS:
        return "PE32+ (64-bit)"
    return "Unknown"


def _optional_header_lines(pe: pefile.PE) -> ReportLines:
    oh = pe.OPTIONAL_HEADER
    lines = _struct_lines(oh.dump_dict())
    lines.append(f"  {'PE type':<30} {_pe_type(pe)}")
    lines.append(f"  {'Subsystem (name)':<30} {pefile.SUBSYSTEM_TYPE.get(oh.Subsystem, 'UNKNOWN')}")
    lines.append(f"  {'DllCharacteristics flags':<30} {', '.join(get_dll_characteristics(oh.DllCharacteristics))}")
    return lines


def _data_directory_lines(pe: pefile.PE) -> ReportLines:
    lines = []
    for entry in pe.OPTIONAL_HEADER.DATA_DIRECTORY:
        if entry.Size or entry.VirtualAddress:
            kind = 'Offset' if entry.name == 'IMAGE_DIRECTORY_ENTRY_SECURITY' else 'RVA'
            lines.append(f"  {entry.name:<40} {kind}: {hex(entry.VirtualAddress):<12} Size: {hex(entry.Size)}")
    return lines or ["  All data directories are empty."]


def _section_table_lines(pe: pefile.PE) -> ReportLines:
    if not pe.sections: return ["  No sections found."]
    lines = []
    for index, section in enumerate(pe.sections, 1):
        lines.append(f"  {index}. {_decode(section.Name)}")
        lines.append(f"    {'VirtualAddress':<28} {hex(section.VirtualAddress)}")
        lines.append(f"    {'VirtualSize':<28} {hex(section.Misc_VirtualSize)}")
        lines.append(f"    {'PointerToRawData':<28} {hex(section.PointerToRawData)}")
        lines.append(f"    {'SizeOfRawData':<28} {hex(section.SizeOfRawData)}")
        lines.append(f"    {'Characteristics':<28} {', '.join(get_section_characteristics(section.Characteristics))}")
    return lines


# --- Special section reports ---
def _import_lines(pe: pefile.PE) -> ReportLines:
    if not hasattr(pe, 'DIRECTORY_ENTRY_IMPORT'): return ["  No import table found."]
    lines = []
    for entry in pe.DIRECTORY_ENTRY_IMPORT:
        lines.append(f"  DLL: {_decode(entry.dll)}")
        for imp in entry.imports:
            name_str = _decode(imp.name) if imp.name else "N/A (Imported by Ordinal)"
            addr = hex(imp.address) if imp.address is not None else 'N/A'
            lines.append(f"    Ordinal: {str(imp.ordinal if imp.ordinal is not None else 'N/A'):<6} Address: {addr:<12} Name: {name_str}")
    return lines


def _export_lines(pe: pefile.PE) -> ReportLines:
    if not hasattr(pe, 'DIRECTORY_ENTRY_EXPORT'): return ["  No export table found."]
    exports = pe.DIRECTORY_ENTRY_EXPORT
    lines = [f"  Exported DLL Name: {_decode(exports.name)}"]
    for exp in exports.symbols:
        name_str = _decode(exp.name) if exp.name else "N/A (Exported by Ordinal)"
        forwarder_str = f" -> {_decode(exp.forwarder)}" if exp.forwarder else ""
        lines.append(f"    Ordinal: {str(exp.ordinal):<6} Address RVA: {hex(exp.address):<12} Name: {name_str}{forwarder_str}")
    return lines


def _resource_name(entry) -> str:
    if getattr(entry, 'name', None) is not None:
        return str(entry.name)
    return f"ID: {entry.id}"


def _resource_lines(pe: pefile.PE) -> ReportLines:
    if not hasattr(pe, 'DIRECTORY_ENTRY_RESOURCE'): return ["  No resource directory found."]
    lines = []
    for type_entry in pe.DIRECTORY_ENTRY_RESOURCE.entries:
        type_str = pefile.RESOURCE_TYPE.get(type_entry.id, _resource_name(type_entry))
        for id_entry in getattr(getattr(type_entry, 'directory', None), 'entries', []):
            for lang_entry in getattr(getattr(id_entry, 'directory', None), 'entries', []):
                data_struct = lang_entry.data.struct
                lines.append(f"  - Type: {type_str}, {_resource_name(id_entry)}, Lang: {lang_entry.id}, "
                             f"RVA: {hex(data_struct.OffsetToData)}, Size: {data_struct.Size}")
    return lines or ["  Resource directory is empty."]


def _version_info_lines(pe: pefile.PE) -> ReportLines:
    lines = []
    for fixed_info in getattr(pe, 'VS_FIXEDFILEINFO', None) or []:
        lines.append(f"  File Version: {fixed_info.FileVersionMS >> 16}.{fixed_info.FileVersionMS & 0xFFFF}"
                     f".{fixed_info.FileVersionLS >> 16}.{fixed_info.FileVersionLS & 0xFFFF}")
    for file_info in getattr(pe, 'FileInfo', None) or []:
        # pefile yields either a flat list or a list of lists depending on version
        for entry in file_info if isinstance(file_info, list) else [file_info]:
            for table in getattr(entry, 'StringTable', []):
                lines.append(f"  Lang/Codepage: {_decode(getattr(table, 'LangID', None))}")
                for key, value in table.entries.items():
                    lines.append(f"    {_decode(key)}: {_decode(value)}")
    return lines or ["  No version information found."]


def _debug_lines(pe: pefile.PE) -> ReportLines:
    if not hasattr(pe, 'DIRECTORY_ENTRY_DEBUG'): return ["  No debug directory found."]
    lines = []
    for entry in pe.DIRECTORY_ENTRY_DEBUG:
        type_str = pefile.DEBUG_TYPE.get(entry.struct.Type, str(entry.struct.Type))
        lines.append(f"  - Type: {type_str}, Size: {entry.struct.SizeOfData}, "
                     f"TimeDateStamp: {format_timestamp(entry.struct.TimeDateStamp)}")
        pdb = getattr(getattr(entry, 'entry', None), 'PdbFileName', None)
        if pdb:
            lines.append(f"    PDB: {_decode(pdb)}")
    return lines


def _delay_import_lines(pe: pefile.PE) -> ReportLines:
    if not hasattr(pe, 'DIRECTORY_ENTRY_DELAY_IMPORT'): return ["  No delay-load imports found."]
    lines = []
    for entry in pe.DIRECTORY_ENTRY_DELAY_IMPORT:
        lines.append(f"  DLL: {_decode(entry.dll)}")
        for imp in entry.imports:
            lines.append(f"    Name: {_decode(imp.name) if imp.name else f'Ordinal {imp.ordinal}'}")
    return lines


# --- Additional reports ---
def _hash_lines(pe: pefile.PE) -> ReportLines:
    data = pe.__data__
    return [
        f"  {'MD5':<8}: {hashlib.md5(data).hexdigest()}",
        f"  {'SHA1':<8}: {hashlib.sha1(data).hexdigest()}",
        f"  {'SHA256':<8}: {hashlib.sha256(data).hexdigest()}",
        f"  {'Imphash':<8}: {pe.get_imphash() or 'N/A (no imports)'}",
    ]


def _entropy_lines(pe: pefile.PE) -> ReportLines:
    if not pe.sections: return ["  No sections found."]
    return [f"  {_decode(section.Name):<10} {section.get_entropy():.4f}" for section in pe.sections]


def _overlay_lines(pe: pefile.PE) -> ReportLines:
    offset = pe.get_overlay_data_start_offset()
    if offset is None: return ["  No overlay."]
    data = pe.get_overlay() or b""
    return [f"  Offset: {hex(offset)}", f"  Size: {len(data)}",
            f"  MD5: {hashlib.md5(data).hexdigest()}"]


def _checksum_lines(pe: pefile.PE) -> ReportLines:
    hdr_sum = pe.OPTIONAL_HEADER.CheckSum
    calc_sum = pe.generate_checksum()
    matches = (hdr_sum == calc_sum) if hdr_sum != 0 else "Header checksum is 0 (not verified)"
    return [f"  Header checksum:     {hex(hdr_sum)}",
            f"  Calculated checksum: {hex(calc_sum)}",
            f"  Matches:             {matches}"]


def _anomaly_lines(pe: pefile.PE) -> ReportLines:
    warnings = pe.get_warnings()
    return [f"  - {w}" for w in warnings] or ["  No anomalies reported by the parser."]


_HEADER_BLOCKS = [
    ("MS-DOS Header", _dos_header_lines),
    ("COFF File Header", _file_header_lines),
    ("Optional Header", _optional_header_lines),
    ("Data Directories", _data_directory_lines),
    ("Section Table", _section_table_lines),
]

_SPECIAL_SECTION_BLOCKS = [
    ("Imports", _import_lines),
    ("Exports", _export_lines),
    ("Resources", _resource_lines),
    ("Version Information", _version_info_lines),
    ("Debug Directory", _debug_lines),
    ("Delay-Load Imports", _delay_import_lines),
]

_ADDITIONAL_BLOCKS = [
    ("Hashes", _hash_lines),
    ("Section Entropy", _entropy_lines),
    ("Overlay", _overlay_lines),
    ("Checksum Verification", _checksum_lines),
    ("Anomalies", _anomaly_lines),
]


class ReportCreator:
    """Builds the four text blocks of a PE report.

    Raises pefile.PEFormatError if the file cannot be parsed at all.
    """

    def __init__(self, filepath: str):
        self.filepath = os.path.abspath(filepath)
        self.pe = pefile.PE(self.filepath, fast_load=False)

    def close(self):
        self.pe.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _render(self, blocks) -> str:
        return "".join(_safe_block(title, func, self.pe) for title, func in blocks)

    @property
    def report_title(self) -> str:
        return (f"Report For {os.path.basename(self.filepath)}\n\n"
                f"full path: {self.filepath}\n"
                f"file size: {len(self.pe.__data__)} bytes\n"
                f"PE type: {_pe_type(self.pe)}\n\n")

    @property
    def header_reports(self) -> str:
        return self._render(_HEADER_BLOCKS)

    @property
    def special_section_reports(self) -> str:
        return self._render(_SPECIAL_SECTION_BLOCKS)

    @property
    def additional_reports(self) -> str:
        return self._render(_ADDITIONAL_BLOCKS)

    def print_report(self):
        for block in (self.report_title, self.header_reports,
                      self.special_section_reports, self.additional_reports):
            safe_print(block)
