"""
genie_shims/address.py
══════════════════════

Recovery of the address a trampoline stub was injected for.

The injection tool emits one stub per exported function, shaped like::

    int __stdcall f(int x) {
        unsigned int addr = 0x00401000;
        ...
    }

which at ``-O0`` lowers to a single basic block containing
``store i32 4198400, ptr %addr``. The address is that literal.
"""

from __future__ import annotations

import logging
from typing import Iterable

from genie_shims.errors import (
    ConstantTypeMismatch,
    LocalNotFound,
    StoreNotFound,
    UnexpectedControlFlow,
)
from genie_shims.ir import Function, IntConst, LocalRef
from genie_shims.locals import LocalVar

logger = logging.getLogger(__name__)

ADDR_VAR = "addr"


def recover_address(function: Function, local_vars: Iterable[LocalVar]) -> int:
    """The unsigned literal stored into the ``addr`` local of *function*."""
    if len(function.blocks) != 1:
        raise UnexpectedControlFlow(len(function.blocks), function.name)

    local = next((v for v in local_vars if v.source_name == ADDR_VAR), None)
    if local is None:
        raise LocalNotFound(ADDR_VAR, function.name)

    slots = function.allocas()
    for store in function.entry.stores():
        dst = store.dst
        if not isinstance(dst, LocalRef) or dst.name != local.ir_name or dst.name not in slots:
            continue
        if not isinstance(store.src, IntConst):
            raise ConstantTypeMismatch(store.src)
        address = store.src.as_unsigned()
        logger.debug("%s: addr = 0x%08X", function.name, address)
        return address

    raise StoreNotFound(local.ir_name, function.name)


__all__ = ["ADDR_VAR", "recover_address"]
