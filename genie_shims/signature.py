"""
genie_shims/signature.py
════════════════════════

Assembly of a :class:`TrampolineDescriptor`: everything a code generator
needs to emit one trampoline.

    ┌───────────────┐   return type   ┌──────────────────────┐
    │ DISubprogram  │ ──────────────▶ │                      │
    ├───────────────┤   cc keyword    │                      │
    │ define ... cc │ ──────────────▶ │  TrampolineDescriptor│
    ├───────────────┤   params        │                      │
    │ entry stores  │ ──────────────▶ │                      │
    ├───────────────┤   addr, bytes   │                      │
    │ addr / image  │ ──────────────▶ │                      │
    └───────────────┘                 └──────────────────────┘
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from genie_shims.ctype import CType, is_void
from genie_shims.errors import ReturnTypeNotFound, UnsupportedCallingConvention
from genie_shims.ir import DISubprogram, DISubroutineType, Function
from genie_shims.locals import LocalVar, bind_param
from genie_shims.type_resolver import TypeResolver

logger = logging.getLogger(__name__)

# IR calling-convention keyword → C spelling.
CALLING_CONVENTIONS = {
    None: "",
    "ccc": "",
    "x86_stdcallcc": "__stdcall",
    "x86_fastcallcc": "__fastcall",
}

# Prefix LLVM puts on symbol names that must not be mangled further.
LITERAL_SYMBOL_MARKER = "\x01"


@dataclass(frozen=True)
class TrampolineDescriptor:
    """The recovered signature, address and patch bytes of one function."""
    function_name: str
    calling_convention: str
    return_type: CType
    parameters: Tuple[LocalVar, ...]
    address: int
    original_bytes: bytes

    @property
    def has_return_value(self) -> bool:
        return not is_void(self.return_type)


def c_calling_convention(calling_convention: Optional[str]) -> str:
    """C keyword for an IR calling convention (``""`` for the C default)."""
    try:
        return CALLING_CONVENTIONS[calling_convention]
    except KeyError:
        raise UnsupportedCallingConvention(str(calling_convention)) from None


def _subprogram(function: Function) -> Optional[DISubprogram]:
    for node in function.metadata_attachments.values():
        if isinstance(node, DISubprogram):
            return node
    return None


def return_type_of(function: Function, resolver: Optional[TypeResolver] = None) -> CType:
    """Return type from the first attached subprogram with a subroutine type."""
    resolver = resolver or TypeResolver()
    for node in function.metadata_attachments.values():
        if not isinstance(node, DISubprogram):
            continue
        subroutine = node.type
        if not isinstance(subroutine, DISubroutineType) or not subroutine.types:
            continue
        return resolver.resolve(subroutine.types[0])
    raise ReturnTypeNotFound(function.name)


def function_display_name(function: Function) -> str:
    """
    The C name of *function*.

    MSVC-style ``\\01_f@8`` symbols carry the literal-symbol marker; their
    C name comes from the attached subprogram instead.
    """
    if not function.name.startswith(LITERAL_SYMBOL_MARKER):
        return function.name
    subprogram = _subprogram(function)
    if subprogram is not None and subprogram.name:
        return subprogram.name
    return function.name[len(LITERAL_SYMBOL_MARKER):]


def assemble(
    function: Function,
    local_vars: Sequence[LocalVar],
    address: int,
    original_bytes: bytes,
    resolver: Optional[TypeResolver] = None,
) -> TrampolineDescriptor:
    """Merge return type, convention, bound parameters, address and bytes."""
    ret_type = return_type_of(function, resolver)
    calling_convention = c_calling_convention(function.calling_convention)
    parameters = tuple(bind_param(function, p.name, local_vars) for p in function.params)
    descriptor = TrampolineDescriptor(
        function_name=function_display_name(function),
        calling_convention=calling_convention,
        return_type=ret_type,
        parameters=parameters,
        address=address,
        original_bytes=bytes(original_bytes),
    )
    logger.debug(
        "assembled %s: %d parameters, returns %s",
        descriptor.function_name, len(parameters), ret_type,
    )
    return descriptor


__all__ = [
    "CALLING_CONVENTIONS",
    "TrampolineDescriptor",
    "c_calling_convention",
    "return_type_of",
    "function_display_name",
    "assemble",
]
