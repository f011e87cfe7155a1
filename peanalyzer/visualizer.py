"""Image representations of a file: entropy heat map, PE structure and byte plot.

Every image is a grid of ``columns`` pixel cells per row, read row by row.
Each cell stands for an equally sized chunk of the file, so the whole file
always fits into the configured height.
"""
import math

from typing import List, Optional, Tuple

from peanalyzer.config import (
    logger, pefile, PIL_AVAILABLE, _check_lib,
    DEFAULT_PIXEL_SIZE, DEFAULT_COLUMNS, DEFAULT_IMAGE_HEIGHT,
)
from peanalyzer.utils import shannon_entropy

if PIL_AVAILABLE:
    from PIL import Image, ImageDraw

Color = Tuple[int, int, int]

NO_DATA_COLOR: Color = (128, 128, 128)
BACKGROUND_COLOR: Color = (0, 0, 0)

# Structure colors
DOS_HEADER_COLOR: Color = (0, 0, 200)
DOS_STUB_COLOR: Color = (0, 200, 200)
PE_HEADERS_COLOR: Color = (200, 0, 200)
SECTION_TABLE_COLOR: Color = (255, 128, 0)
OVERLAY_COLOR: Color = (255, 255, 255)
UNASSIGNED_COLOR: Color = (30, 30, 30)
SECTION_PALETTE: List[Color] = [
    (0, 160, 0), (200, 200, 0), (200, 0, 0), (0, 100, 255),
    (160, 80, 0), (120, 0, 200), (0, 120, 120), (255, 100, 150),
]

# Byte plot colors
ZERO_BYTE_COLOR: Color = (0, 0, 0)
FF_BYTE_COLOR: Color = (255, 255, 255)
ASCII_BYTE_COLOR: Color = (0, 0, 255)
CONTROL_BYTE_COLOR: Color = (0, 255, 0)
OTHER_BYTE_COLOR: Color = (255, 255, 0)

Region = Tuple[int, int, Color]


def entropy_color(entropy: float) -> Color:
    """Heat scale: black (0.0) over red to yellow (8.0)."""
    t = min(max(entropy / 8.0, 0.0), 1.0)
    if t < 0.5:
        return (int(510 * t), 0, 0)
    return (255, int(510 * (t - 0.5)), 0)


def byte_color(value: int) -> Color:
    if value == 0x00:
        return ZERO_BYTE_COLOR
    if value == 0xFF:
        return FF_BYTE_COLOR
    if 0x20 <= value <= 0x7E:
        return ASCII_BYTE_COLOR
    if value < 0x20 or value == 0x7F:
        return CONTROL_BYTE_COLOR
    return OTHER_BYTE_COLOR


def structure_regions(pe: pefile.PE) -> List[Region]:
    """File ranges of the PE parts, later entries drawn over earlier ones."""
    e_lfanew = pe.DOS_HEADER.e_lfanew
    table_start = e_lfanew + 4 + pe.FILE_HEADER.sizeof() + pe.FILE_HEADER.SizeOfOptionalHeader
    table_end = table_start + 40 * len(pe.sections)
    regions = [
        (0, 0x40, DOS_HEADER_COLOR),
        (0x40, e_lfanew, DOS_STUB_COLOR),
        (e_lfanew, table_start, PE_HEADERS_COLOR),
        (table_start, table_end, SECTION_TABLE_COLOR),
    ]
    for index, section in enumerate(pe.sections):
        start = section.PointerToRawData
        regions.append((start, start + section.SizeOfRawData, SECTION_PALETTE[index % len(SECTION_PALETTE)]))
    overlay_start = pe.get_overlay_data_start_offset()
    if overlay_start is not None:
        regions.append((overlay_start, len(pe.__data__), OVERLAY_COLOR))
    return regions


def region_color(offset: int, regions: List[Region]) -> Color:
    for start, end, color in reversed(regions):
        if start <= offset < end:
            return color
    return UNASSIGNED_COLOR


def append_images(left: "Image.Image", right: "Image.Image") -> "Image.Image":
    """Place *right* next to *left*. The result is as high as the higher one."""
    combined = Image.new("RGB", (left.width + right.width, max(left.height, right.height)), BACKGROUND_COLOR)
    combined.paste(left, (0, 0))
    combined.paste(right, (left.width, 0))
    return combined


class Visualizer:
    def __init__(self, pixel_size: Optional[int] = None, columns: Optional[int] = None,
                 height: Optional[int] = None):
        _check_lib("Pillow", PIL_AVAILABLE, "picture")
        self.pixel_size = pixel_size or DEFAULT_PIXEL_SIZE
        self.columns = columns or DEFAULT_COLUMNS
        self.height = height or DEFAULT_IMAGE_HEIGHT
        self.rows = max(1, self.height // self.pixel_size)

    @property
    def cells(self) -> int:
        return self.columns * self.rows

    def bytes_per_pixel(self, file_size: int) -> int:
        return max(1, math.ceil(file_size / self.cells))

    def _paint(self, data: bytes, color_for_chunk) -> "Image.Image":
        image = Image.new("RGB", (self.columns * self.pixel_size, self.rows * self.pixel_size), NO_DATA_COLOR)
        draw = ImageDraw.Draw(image)
        chunk_size = self.bytes_per_pixel(len(data))
        logger.debug(f"Painting {len(data)} bytes, {chunk_size} bytes per pixel cell.")
        for cell in range(self.cells):
            offset = cell * chunk_size
            if offset >= len(data):
                break
            row, col = divmod(cell, self.columns)
            x, y = col * self.pixel_size, row * self.pixel_size
            color = color_for_chunk(offset, data[offset:offset + chunk_size])
            draw.rectangle([x, y, x + self.pixel_size - 1, y + self.pixel_size - 1], fill=color)
        return image

    def create_entropy_image(self, filepath: str) -> "Image.Image":
        with open(filepath, 'rb') as f:
            data = f.read()
        return self._paint(data, lambda offset, chunk: entropy_color(shannon_entropy(chunk)))

    def create_image(self, filepath: str) -> "Image.Image":
        """PE structure image."""
        pe = pefile.PE(filepath, fast_load=True)
        try:
            regions = structure_regions(pe)
            data = pe.__data__[:]
        finally:
            pe.close()
        return self._paint(data, lambda offset, chunk: region_color(offset, regions))

    def create_byte_plot(self, filepath: str) -> "Image.Image":
        with open(filepath, 'rb') as f:
            data = f.read()
        return self._paint(data, lambda offset, chunk: byte_color(chunk[0]))
