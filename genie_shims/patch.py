"""
genie_shims/patch.py
════════════════════

The bytes a hook overwrites.

Hooking a function replaces its first instruction bytes with a 5-byte
``jmp rel32``; the trampoline keeps the original bytes so it can undo the
patch around a call to the real function.
"""

from __future__ import annotations

import logging

from genie_shims.errors import AddressOutOfRange
from genie_shims.image import ImageReader

logger = logging.getLogger(__name__)

# Length of an x86 `jmp rel32` (E9 xx xx xx xx).
PATCH_SIZE = 5


def extract_original_bytes(reader: ImageReader, address: int, width: int = PATCH_SIZE) -> bytes:
    """Read the *width* bytes at *address* that the hook will overwrite."""
    data = reader.read_bytes(address, width)
    if len(data) != width:
        raise AddressOutOfRange(address, width)
    logger.debug("original bytes at 0x%08X: %s", address, data.hex(" "))
    return bytes(data)


__all__ = ["PATCH_SIZE", "extract_original_bytes"]
