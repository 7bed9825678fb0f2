"""
genie_shims/locals.py
═════════════════════

Binding between IR stack slots, C source names and C types.

clang at ``-O0`` gives every parameter and local its own ``alloca`` slot
and announces it to the debugger::

    %x.addr = alloca i32, align 4
    store i32 %x, ptr %x.addr, align 4
    call void @llvm.dbg.declare(metadata ptr %x.addr, metadata !15, ...)
    ; or, LLVM 19+:
    #dbg_declare(ptr %x.addr, !15, !DIExpression(), !16)

``collect_locals`` reads the debug declarations into a table of
:class:`LocalVar`; ``bind_param`` follows the entry-block store from a
parameter to its slot and looks the slot up in that table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from genie_shims.ctype import CType
from genie_shims.errors import DebugInfoMissing, ParamBindingNotFound
from genie_shims.ir import (
    CallInst,
    DbgRecord,
    DILocalVariable,
    Function,
    Instruction,
    MetadataArg,
    is_named,
)
from genie_shims.type_resolver import TypeResolver

logger = logging.getLogger(__name__)

DBG_DECLARE = "llvm.dbg.declare"


@dataclass(frozen=True)
class LocalVar:
    """A stack slot (``ir_name``) with its C name and C type."""
    ir_name: str
    source_name: str
    type: CType


def _declared_operands(inst: Instruction) -> Optional[Tuple[Any, Any]]:
    """The (slot, variable) operands of a debug declaration, else ``None``."""
    if isinstance(inst, CallInst):
        if inst.callee_name != DBG_DECLARE or len(inst.args) < 2:
            return None
        slot, var = inst.args[0], inst.args[1]
        if not (isinstance(slot, MetadataArg) and isinstance(var, MetadataArg)):
            return None
        return slot.value, var.value
    if isinstance(inst, DbgRecord):
        if inst.kind != "declare" or len(inst.args) < 2:
            return None
        return inst.args[0], inst.args[1]
    return None


def collect_locals(function: Function, resolver: Optional[TypeResolver] = None) -> List[LocalVar]:
    """Every debug-declared local of *function*, in instruction order."""
    resolver = resolver or TypeResolver()
    result: List[LocalVar] = []
    for block in function.blocks:
        for inst in block.instructions:
            operands = _declared_operands(inst)
            if operands is None:
                continue
            slot, var = operands
            if not is_named(slot) or not isinstance(var, DILocalVariable):
                continue
            result.append(LocalVar(slot.name, var.name, resolver.resolve(var.type)))
    logger.debug("%s: %d debug-declared locals", function.name, len(result))
    return result


def bind_param_name(function: Function, param_name: str) -> str:
    """
    Name of the stack slot *param_name* is spilled into.

    Scans the entry block for the first ``store`` whose source is the
    parameter; a leading ``%`` on *param_name* is ignored.
    """
    wanted = param_name[1:] if param_name.startswith("%") else param_name
    if function.blocks:
        for store in function.entry.stores():
            if is_named(store.src) and store.src.name == wanted and is_named(store.dst):
                return store.dst.name
    raise ParamBindingNotFound(wanted, function.name)


def bind_param(function: Function, param_name: str, local_vars: Iterable[LocalVar]) -> LocalVar:
    """The :class:`LocalVar` holding parameter *param_name*."""
    slot = bind_param_name(function, param_name)
    for local in local_vars:
        if local.ir_name == slot:
            return local
    raise DebugInfoMissing(slot, function.name)


__all__ = [
    "DBG_DECLARE",
    "LocalVar",
    "collect_locals",
    "bind_param_name",
    "bind_param",
]
