"""Unit tests for peanalyzer/utils.py: utility functions."""
import pytest

pefile = pytest.importorskip("pefile", reason="pefile not installed")

from peanalyzer.utils import (
    shannon_entropy,
    format_timestamp,
    get_file_characteristics,
    get_dll_characteristics,
    get_section_characteristics,
    safe_print,
)


# ---------------------------------------------------------------------------
# shannon_entropy
# ---------------------------------------------------------------------------

class TestShannonEntropy:
    @pytest.mark.parametrize("data,expected", [
        (b"", 0.0),
        (b"\x00" * 100, 0.0),
        (b"\x00" * 50 + b"\x01" * 50, 1.0),
        (bytes(range(256)), 8.0),
    ])
    def test_known_values(self, data, expected):
        assert abs(shannon_entropy(data) - expected) < 1e-6

    def test_ascii_text_entropy(self):
        data = b"Hello, World! This is a test string for entropy measurement."
        assert 3.0 < shannon_entropy(data) < 6.0


# ---------------------------------------------------------------------------
# format_timestamp
# ---------------------------------------------------------------------------

class TestFormatTimestamp:
    def test_zero_timestamp(self):
        assert "No timestamp" in format_timestamp(0)

    def test_negative_timestamp(self):
        assert "Invalid" in format_timestamp(-1)

    def test_non_integer(self):
        assert "Invalid" in format_timestamp("abc")

    def test_valid_timestamp(self):
        assert format_timestamp(1577836800) == "2020-01-01 00:00:00 UTC"

    def test_unusual_year(self):
        # 1975 predates PE files
        assert "unusual" in format_timestamp(157766400)


# ---------------------------------------------------------------------------
# characteristics flags
# ---------------------------------------------------------------------------

class TestCharacteristics:
    def test_file_characteristics(self):
        flags = get_file_characteristics(0x0102)
        assert "IMAGE_FILE_EXECUTABLE_IMAGE" in flags
        assert "IMAGE_FILE_32BIT_MACHINE" in flags
        assert "IMAGE_FILE_DLL" not in flags

    def test_no_flags(self):
        assert get_file_characteristics(0) == ["NONE"]

    def test_dll_characteristics(self):
        flags = get_dll_characteristics(0x0040)
        assert "IMAGE_DLLCHARACTERISTICS_DYNAMIC_BASE" in flags

    def test_section_characteristics(self):
        flags = get_section_characteristics(0x60000020)
        assert "IMAGE_SCN_CNT_CODE" in flags
        assert "IMAGE_SCN_MEM_EXECUTE" in flags
        assert "IMAGE_SCN_MEM_READ" in flags


# ---------------------------------------------------------------------------
# safe_print
# ---------------------------------------------------------------------------

class TestSafePrint:
    def test_stdout(self, capsys):
        safe_print("hello")
        assert capsys.readouterr().out == "hello\n"

    def test_stderr(self, capsys):
        import sys
        safe_print("oops", file=sys.stderr)
        captured = capsys.readouterr()
        assert captured.err == "oops\n"
        assert captured.out == ""
