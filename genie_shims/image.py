"""
genie_shims/image.py
════════════════════

Readers for the original executable image.

A reader answers one question: which bytes does the loaded image hold at
a virtual address? ``PEImage`` answers it for Windows PE files through
``pefile``; ``RawImage`` for a flat memory dump loaded at a known base.

Usage::

    with PEImage("game.exe") as image:
        prologue = image.read_bytes(0x00401000, 5)

Depends on:
    - pefile (PE parsing)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Protocol, Union, runtime_checkable

import pefile

from genie_shims.errors import AddressOutOfRange, ImageIOError

logger = logging.getLogger(__name__)


@runtime_checkable
class ImageReader(Protocol):
    """Anything that can read bytes at a virtual address."""

    def read_bytes(self, address: int, length: int) -> bytes:
        """Exactly *length* bytes at *address*, or ``AddressOutOfRange``."""
        ...


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — PE IMAGES
# ═══════════════════════════════════════════════════════════════════════════

class PEImage:
    """
    A PE executable mapped the way the Windows loader would map it.

    Addresses are virtual addresses (``ImageBase + RVA``). The tail of a
    section whose virtual size exceeds its raw data reads as zeros.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = str(path)
        try:
            self._pe = pefile.PE(self.path, fast_load=True)
        except (OSError, pefile.PEFormatError) as exc:
            raise ImageIOError(self.path, exc) from exc
        self.image_base: int = self._pe.OPTIONAL_HEADER.ImageBase
        logger.debug(
            "opened %s: image base 0x%08X, %d sections",
            self.path, self.image_base, len(self._pe.sections),
        )

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> "PEImage":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._pe.close()

    # ── reads ────────────────────────────────────────────────────────

    def _section_for(self, rva: int) -> Optional[Any]:
        for section in self._pe.sections:
            if section.contains_rva(rva):
                return section
        return None

    def read_bytes(self, address: int, length: int) -> bytes:
        rva = address - self.image_base
        section = self._section_for(rva) if rva >= 0 else None
        if section is None:
            raise AddressOutOfRange(address, length)

        virtual_size = max(section.Misc_VirtualSize, section.SizeOfRawData)
        if rva + length > section.VirtualAddress + virtual_size:
            raise AddressOutOfRange(address, length)

        data = section.get_data(rva, length)
        return data.ljust(length, b"\x00")


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — FLAT IMAGES
# ═══════════════════════════════════════════════════════════════════════════

class RawImage:
    """A flat memory image whose first byte sits at ``base_address``."""

    def __init__(self, data: bytes, base_address: int = 0) -> None:
        self.data = bytes(data)
        self.base_address = base_address

    @classmethod
    def from_file(cls, path: Union[str, Path], base_address: int = 0) -> "RawImage":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise ImageIOError(str(path), exc) from exc
        return cls(data, base_address)

    def __enter__(self) -> "RawImage":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        pass

    def read_bytes(self, address: int, length: int) -> bytes:
        offset = address - self.base_address
        if offset < 0 or offset + length > len(self.data):
            raise AddressOutOfRange(address, length)
        return self.data[offset:offset + length]


__all__ = ["ImageReader", "PEImage", "RawImage"]
