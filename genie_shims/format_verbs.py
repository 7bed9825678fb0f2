"""
genie_shims/format_verbs.py
═══════════════════════════

printf placeholders for C types, used when a trampoline logs its
arguments.
"""

from __future__ import annotations

from genie_shims.ctype import BasicKind, BasicType, CType, PointerType, Typedef
from genie_shims.errors import NoFormatVerb

CHAR = BasicType(BasicKind.CHAR)


def format_verb(t: CType) -> str:
    """
    The printf verb for *t*.

    Integers print with ``%d`` (``%lld`` for the long long family), floating
    types with ``%f``, ``char *`` as a string and any other pointer as an
    address. Typedefs use their underlying type.
    """
    if isinstance(t, Typedef):
        return format_verb(t.typ)
    if isinstance(t, BasicType):
        if t.kind.is_floating:
            return "%f"
        if t.kind.is_wide:
            return "%lld"
        if t.kind.is_integer:
            return "%d"
        raise NoFormatVerb(t)
    if isinstance(t, PointerType):
        return "%s" if t.elem == CHAR else "%p"
    raise NoFormatVerb(t)


def has_format_verb(t: CType) -> bool:
    try:
        format_verb(t)
    except NoFormatVerb:
        return False
    return True


__all__ = ["format_verb", "has_format_verb"]
