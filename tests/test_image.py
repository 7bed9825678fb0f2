# tests/test_image.py
"""Tests for PE and flat-dump image readers and patch-byte extraction."""

from unittest.mock import MagicMock, patch

import pefile
import pytest

from genie_shims.errors import AddressOutOfRange, ImageIOError
from genie_shims.image import ImageReader, PEImage, RawImage
from genie_shims.patch import PATCH_SIZE, extract_original_bytes

IMAGE_BASE = 0x00400000


def _section(virtual_address, virtual_size, raw):
    section = MagicMock()
    section.VirtualAddress = virtual_address
    section.Misc_VirtualSize = virtual_size
    section.SizeOfRawData = len(raw)
    section.contains_rva.side_effect = (
        lambda rva: virtual_address <= rva < virtual_address + max(virtual_size, len(raw))
    )

    def get_data(start, length):
        offset = start - virtual_address
        return raw[offset:offset + length]

    section.get_data.side_effect = get_data
    return section


@pytest.fixture
def fake_pe():
    text = bytes(range(0x40))
    pe = MagicMock()
    pe.OPTIONAL_HEADER.ImageBase = IMAGE_BASE
    pe.sections = [
        _section(0x1000, 0x40, text),
        # .bss-like: virtual size larger than its raw data
        _section(0x2000, 0x100, b"\xaa" * 0x10),
    ]
    with patch("genie_shims.image.pefile.PE", return_value=pe) as ctor:
        yield ctor, pe


class TestPEImage:

    def test_opens_with_fast_load(self, fake_pe):
        ctor, _ = fake_pe
        image = PEImage("orig.exe")
        ctor.assert_called_once_with("orig.exe", fast_load=True)
        assert image.image_base == IMAGE_BASE

    def test_reads_at_virtual_address(self, fake_pe):
        image = PEImage("orig.exe")
        assert image.read_bytes(0x00401000, 5) == bytes([0, 1, 2, 3, 4])
        assert image.read_bytes(0x00401010, 2) == bytes([0x10, 0x11])

    def test_virtual_tail_reads_as_zeros(self, fake_pe):
        image = PEImage("orig.exe")
        assert image.read_bytes(0x0040200E, 4) == b"\xaa\xaa\x00\x00"

    def test_unmapped_address(self, fake_pe):
        image = PEImage("orig.exe")
        with pytest.raises(AddressOutOfRange) as exc_info:
            image.read_bytes(0x00403000, 5)
        assert exc_info.value.address == 0x00403000

    def test_below_image_base(self, fake_pe):
        with pytest.raises(AddressOutOfRange):
            PEImage("orig.exe").read_bytes(0x1000, 5)

    def test_range_crossing_section_end(self, fake_pe):
        with pytest.raises(AddressOutOfRange):
            PEImage("orig.exe").read_bytes(0x0040103E, 5)

    def test_context_manager_closes(self, fake_pe):
        _, pe = fake_pe
        with PEImage("orig.exe") as image:
            assert isinstance(image, ImageReader)
        pe.close.assert_called_once_with()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImageIOError) as exc_info:
            PEImage(tmp_path / "missing.exe")
        assert "missing.exe" in str(exc_info.value)

    def test_not_a_pe_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"definitely not MZ" * 8)
        with pytest.raises(ImageIOError) as exc_info:
            PEImage(path)
        assert isinstance(exc_info.value.cause, pefile.PEFormatError)


class TestRawImage:

    def test_reads_relative_to_base(self):
        image = RawImage(b"\x00\x01\x02\x03\x04\x05", base_address=0x1000)
        assert image.read_bytes(0x1002, 3) == b"\x02\x03\x04"

    def test_reads_up_to_the_end(self):
        image = RawImage(b"\x00\x01\x02", base_address=0x1000)
        assert image.read_bytes(0x1000, 3) == b"\x00\x01\x02"

    @pytest.mark.parametrize("address,length", [(0x0FFF, 1), (0x1002, 2), (0x2000, 1)])
    def test_out_of_range(self, address, length):
        with pytest.raises(AddressOutOfRange):
            RawImage(b"\x00\x01\x02", base_address=0x1000).read_bytes(address, length)

    def test_from_file(self, tmp_path):
        path = tmp_path / "dump.bin"
        path.write_bytes(b"\x90" * 8)
        image = RawImage.from_file(path, 0x400000)
        assert image.base_address == 0x400000
        assert image.read_bytes(0x400004, 2) == b"\x90\x90"

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(ImageIOError):
            RawImage.from_file(tmp_path / "missing.bin")

    def test_satisfies_reader_protocol(self):
        assert isinstance(RawImage(b""), ImageReader)


class TestExtractOriginalBytes:

    def test_reads_patch_width(self, raw_image):
        assert extract_original_bytes(raw_image, 0x00401000) == bytes([0x55, 0x8B, 0xEC, 0x8B, 0x45])

    def test_default_width_is_jmp_rel32(self):
        assert PATCH_SIZE == 5

    def test_custom_width(self, raw_image):
        assert extract_original_bytes(raw_image, 0x00401000, 2) == b"\x55\x8b"

    def test_out_of_range_propagates(self, raw_image):
        with pytest.raises(AddressOutOfRange):
            extract_original_bytes(raw_image, 0x80000000)

    def test_short_read_is_out_of_range(self):
        reader = MagicMock()
        reader.read_bytes.return_value = b"\x55\x8b"
        with pytest.raises(AddressOutOfRange) as exc_info:
            extract_original_bytes(reader, 0x401000)
        assert exc_info.value.length == PATCH_SIZE
        reader.read_bytes.assert_called_once_with(0x401000, PATCH_SIZE)
