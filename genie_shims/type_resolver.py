"""
genie_shims/type_resolver.py
════════════════════════════

Debug-metadata type nodes → :mod:`genie_shims.ctype` terms.

Dispatch is on the node's variant and, for composite and derived nodes,
on its ``tag``::

    null / absent baseType          → void
    DIBasicType(name)               → basic(name)
    DICompositeType enumeration     → enum(name)
    DICompositeType structure       → struct(name)
    DIDerivedType const_type        → const(resolve(baseType))
    DIDerivedType pointer_type      → ptr(resolve(baseType))
    DIDerivedType typedef           → typedef(name, resolve(baseType))
    DISubroutineType                → func(resolve(types[0]), types[1:])

Every other shape fails with a subclass of ``UnsupportedType``. A
``cc:`` outside ``SUBROUTINE_CALL_CONV`` is dropped and logged at DEBUG.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from genie_shims.ctype import (
    VOID,
    BasicKind,
    BasicType,
    ConstType,
    CType,
    EnumType,
    FuncType,
    PointerType,
    StructType,
    Typedef,
)
from genie_shims.errors import (
    UnsupportedCompositeTag,
    UnsupportedDerivedTag,
    UnsupportedType,
)
from genie_shims.ir import (
    DIBasicType,
    DICompositeType,
    DIDerivedType,
    DINode,
    DISubroutineType,
    NullMetadata,
)

logger = logging.getLogger(__name__)


# DWARF calling-convention codes carried by DISubroutineType(cc: ...).
SUBROUTINE_CALL_CONV: Dict[str, str] = {
    "DW_CC_BORLAND_stdcall": "__stdcall",
    "DW_CC_BORLAND_msfastcall": "__fastcall",
}


class TypeResolver:
    """
    Resolves metadata type nodes to C types.

    With ``memoize=True`` results are cached per metadata node; nodes hash
    by identity and the cache keeps them alive, so a result is only ever
    returned for the node it was computed from.
    Type graphs are assumed acyclic (C debug info for parameter types is).
    """

    def __init__(self, memoize: bool = False) -> None:
        self.memoize = memoize
        self._cache: Dict[DINode, CType] = {}

    def resolve(self, node: Any) -> CType:
        if not self.memoize or not isinstance(node, DINode):
            return self._resolve(node)
        cached = self._cache.get(node)
        if cached is None:
            cached = self._cache[node] = self._resolve(node)
        return cached

    def _resolve(self, node: Any) -> CType:
        if node is None or isinstance(node, NullMetadata):
            return VOID
        if isinstance(node, DIBasicType):
            return BasicType(BasicKind.from_name(node.name))
        if isinstance(node, DICompositeType):
            return self._composite(node)
        if isinstance(node, DIDerivedType):
            return self._derived(node)
        if isinstance(node, DISubroutineType):
            return self._subroutine(node)
        raise UnsupportedType(node)

    def _composite(self, node: DICompositeType) -> CType:
        tag = node.tag
        if tag == "DW_TAG_enumeration_type":
            return EnumType(node.name)
        if tag == "DW_TAG_structure_type":
            return StructType(node.name)
        raise UnsupportedCompositeTag(tag)

    def _derived(self, node: DIDerivedType) -> CType:
        tag = node.tag
        if tag == "DW_TAG_const_type":
            return ConstType(self.resolve(node.base_type))
        if tag == "DW_TAG_pointer_type":
            return PointerType(self.resolve(node.base_type))
        if tag == "DW_TAG_typedef":
            return Typedef(node.name, self.resolve(node.base_type))
        raise UnsupportedDerivedTag(tag)

    def _subroutine(self, node: DISubroutineType) -> CType:
        types = node.types
        ret_type = self.resolve(types[0]) if types else VOID
        params = tuple(self.resolve(t) for t in types[1:])
        call_conv = SUBROUTINE_CALL_CONV.get(node.cc) if node.cc else None
        if node.cc and call_conv is None:
            logger.debug("dropping unsupported calling convention %s", node.cc)
        return FuncType(ret_type, params, call_conv)


_default_resolver: Optional[TypeResolver] = None


def resolve_type(node: Any) -> CType:
    """Resolve *node* with a shared, non-memoising resolver."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = TypeResolver()
    return _default_resolver.resolve(node)


__all__ = [
    "SUBROUTINE_CALL_CONV",
    "TypeResolver",
    "resolve_type",
]
