"""Shared fixtures for PeAnalyzer tests."""
import struct
import pytest

SECTION_ALIGNMENT = 0x1000
FILE_ALIGNMENT = 0x200
TEXT_RVA = 0x1000
RT_ICON = 3
RT_GROUP_ICON = 14
ICON_IMAGE = struct.pack("<IiiHH", 40, 16, 32, 1, 32) + b"\x00" * 24 + b"\xAB" * 16


def build_minimal_pe(section_data: bytes = b"\xc3" + b"\x90" * 15, overlay: bytes = b"",
                     data_directories=None) -> bytes:
    """A PE32 console executable with one .text section, optionally followed by an overlay.

    *data_directories* maps a directory index to an ``(rva, size)`` pair.
    """
    e_lfanew = 0x40
    dos_header = bytearray(0x40)
    dos_header[0:2] = b"MZ"
    struct.pack_into("<I", dos_header, 0x3C, e_lfanew)

    # Machine, NumberOfSections, TimeDateStamp, PointerToSymbolTable,
    # NumberOfSymbols, SizeOfOptionalHeader, Characteristics
    file_header = struct.pack("<HHIIIHH", 0x14C, 1, 1577836800, 0, 0, 0xE0, 0x0102)
    optional_header = struct.pack(
        "<HBB9I6H4I2H6I",
        0x10B, 14, 0,
        FILE_ALIGNMENT, 0, 0, 0x1000, 0x1000, 0x2000, 0x400000, SECTION_ALIGNMENT, FILE_ALIGNMENT,
        6, 0, 0, 0, 6, 0,
        0, 0x2000, FILE_ALIGNMENT, 0,
        3, 0x8140,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16,
    )
    directories = bytearray(16 * 8)
    for index, (rva, size) in (data_directories or {}).items():
        struct.pack_into("<II", directories, index * 8, rva, size)
    section_header = struct.pack(
        "<8sIIIIIIHHI",
        b".text", 0x1000, TEXT_RVA, FILE_ALIGNMENT, FILE_ALIGNMENT, 0, 0, 0, 0, 0x60000020,
    )

    headers = bytes(dos_header) + b"PE\x00\x00" + file_header + optional_header + bytes(directories) + section_header
    headers = headers.ljust(FILE_ALIGNMENT, b"\x00")
    section = section_data.ljust(FILE_ALIGNMENT, b"\x00")
    return headers + section + overlay


def _resource_table(entries) -> bytes:
    table = struct.pack("<IIHHHH", 0, 0, 0, 0, 0, len(entries))
    for ident, offset in entries:
        table += struct.pack("<II", ident, offset)
    return table


def build_resource_tree(resources, base_rva: int = TEXT_RVA) -> bytes:
    """Serialise ``{type_id: {resource_id: data}}`` into a type/name/language
    resource directory loaded at *base_rva*. Every resource gets language 1033."""
    type_ids = sorted(resources)
    count = sum(len(resources[t]) for t in type_ids)
    root_size = 16 + 8 * len(type_ids)
    lang_tables_start = root_size + sum(16 + 8 * len(resources[t]) for t in type_ids)
    data_entries_start = lang_tables_start + 24 * count
    blobs_start = data_entries_start + 16 * count

    root_entries = []
    type_tables = lang_tables = data_entries = blobs = b""
    item = 0
    for type_id in type_ids:
        root_entries.append((type_id, 0x80000000 | (root_size + len(type_tables))))
        name_entries = []
        for resource_id in sorted(resources[type_id]):
            data = resources[type_id][resource_id]
            name_entries.append((resource_id, 0x80000000 | (lang_tables_start + 24 * item)))
            lang_tables += _resource_table([(1033, data_entries_start + 16 * item)])
            data_entries += struct.pack("<IIII", base_rva + blobs_start + len(blobs), len(data), 0, 0)
            blobs += data.ljust((len(data) + 3) & ~3, b"\x00")
            item += 1
        type_tables += _resource_table(name_entries)
    return _resource_table(root_entries) + type_tables + lang_tables + data_entries + blobs


def group_icon_entry(icon_id: int, image: bytes = ICON_IMAGE) -> bytes:
    """A GRPICONDIR naming one 16x16 RT_ICON image."""
    return struct.pack("<HHH", 0, 1, 1) + struct.pack("<BBBBHHIH", 16, 16, 0, 0, 1, 32, len(image), icon_id)


def build_icon_pe(resources) -> bytes:
    tree = build_resource_tree(resources)
    return build_minimal_pe(section_data=tree, data_directories={2: (TEXT_RVA, len(tree))})


@pytest.fixture
def pe_file(tmp_path):
    path = tmp_path / "sample.exe"
    path.write_bytes(build_minimal_pe())
    return path


@pytest.fixture
def pe_file_with_overlay(tmp_path):
    path = tmp_path / "overlay.exe"
    path.write_bytes(build_minimal_pe(overlay=b"OVERLAY!" * 8))
    return path


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "picture.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
    return path


@pytest.fixture
def text_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello world, this is plain text\n")
    return path


@pytest.fixture
def icon_pe(tmp_path):
    path = tmp_path / "icon.exe"
    path.write_bytes(build_icon_pe({
        RT_ICON: {1: ICON_IMAGE},
        RT_GROUP_ICON: {1: group_icon_entry(1)},
    }))
    return path


@pytest.fixture
def icon_pe_with_dangling_group(tmp_path):
    """Group 1 is valid, group 2 names an RT_ICON that does not exist."""
    path = tmp_path / "dangling.exe"
    path.write_bytes(build_icon_pe({
        RT_ICON: {1: ICON_IMAGE},
        RT_GROUP_ICON: {1: group_icon_entry(1), 2: group_icon_entry(9)},
    }))
    return path
