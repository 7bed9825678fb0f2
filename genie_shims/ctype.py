"""
genie_shims/ctype.py
════════════════════

The C data types of exported signatures.

We model just enough of the C type lattice to render a recovered function
signature back into C:

    τ ::= basic(k)                    (k ∈ BasicKind, incl. void)
        | ptr(τ)                      (pointer to τ)
        | const(τ)                    (const-qualified τ)
        | enum(tag) | struct(tag)     (opaque tag references)
        | typedef(name, τ)            (renders as name, keeps τ)
        | func(τ_ret, [τ_1, …, τ_n])  (subroutine type)

Every variant is a frozen dataclass; trees compare structurally, so two
independently resolved copies of the same metadata are equal.

Rendering follows C declarator syntax: ``str(t)`` is the abstract
declarator (``char *``, ``int (*)(int)``), ``t.declare("x")`` the concrete
one (``char *x``, ``int (__stdcall *x)(int)``).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from genie_shims.errors import UnsupportedBasicType


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — BASIC TYPES
# ═════════════════════════════════════════════════════════════════════════

class BasicKind(Enum):
    """
    The C arithmetic types, spelled the way debug info spells them.

    ref: https://en.wikipedia.org/wiki/C_data_types#Basic_types
    """
    VOID = "void"
    # signed or unsigned char
    CHAR = "char"
    SCHAR = "signed char"              # [-127, +127]
    UCHAR = "unsigned char"            # [0, 255]
    # [-32,767, +32,767]
    SHORT = "short"
    SHORT_INT = "short int"
    SSHORT = "signed short"
    SSHORT_INT = "signed short int"
    # [0, 65,535]
    USHORT = "unsigned short"
    USHORT_INT = "unsigned short int"
    # [-32,767, +32,767]
    INT = "int"
    SIGNED = "signed"
    SINT = "signed int"
    # [0, 65,535]
    UNSIGNED = "unsigned"
    UINT = "unsigned int"
    # [-2,147,483,647, +2,147,483,647]
    LONG = "long"
    LONG_INT = "long int"
    SLONG = "signed long"
    SLONG_INT = "signed long int"
    # [0, 4,294,967,295]
    ULONG = "unsigned long"
    ULONG_INT = "unsigned long int"
    # [-9,223,372,036,854,775,807, +9,223,372,036,854,775,807]
    LONG_LONG = "long long"
    LONG_LONG_INT = "long long int"
    SLONG_LONG = "signed long long"
    SLONG_LONG_INT = "signed long long int"
    # [0, +18,446,744,073,709,551,615]
    ULONG_LONG = "unsigned long long"
    ULONG_LONG_INT = "unsigned long long int"
    # IEEE 754 single, double and quadruple precision
    FLOAT = "float"
    DOUBLE = "double"
    LONG_DOUBLE = "long double"

    @classmethod
    def from_name(cls, name: str) -> "BasicKind":
        """Exact-name lookup; anything else is an ``UnsupportedBasicType``."""
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedBasicType(name) from None

    @property
    def is_void(self) -> bool:
        return self is BasicKind.VOID

    @property
    def is_floating(self) -> bool:
        return self in _FLOATING_KINDS

    @property
    def is_wide(self) -> bool:
        """True for the 64-bit ``long long`` family."""
        return self in _WIDE_KINDS

    @property
    def is_integer(self) -> bool:
        return not (self.is_void or self.is_floating)


_FLOATING_KINDS = frozenset({BasicKind.FLOAT, BasicKind.DOUBLE, BasicKind.LONG_DOUBLE})

_WIDE_KINDS = frozenset({
    BasicKind.LONG_LONG,
    BasicKind.LONG_LONG_INT,
    BasicKind.SLONG_LONG,
    BasicKind.SLONG_LONG_INT,
    BasicKind.ULONG_LONG,
    BasicKind.ULONG_LONG_INT,
})


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — TYPE TERMS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BasicType:
    """A C basic type."""
    kind: BasicKind

    def declare(self, ident: str = "") -> str:
        return _join(self.kind.value, ident)

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class PointerType:
    """A C pointer type."""
    elem: "CType"

    def declare(self, ident: str = "") -> str:
        if isinstance(self.elem, FuncType):
            # Pointers to functions need the spiral: ret (cc *ident)(params).
            cc = self.elem.call_conv
            inner = f"({cc} *{ident})" if cc else f"(*{ident})"
            return dataclasses.replace(self.elem, call_conv=None).declare(inner)
        return self.elem.declare(f"*{ident}")

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class ConstType:
    """A const-qualified C type."""
    elem: "CType"

    def declare(self, ident: str = "") -> str:
        if isinstance(self.elem, PointerType):
            # The pointer itself is const: char *const p.
            return self.elem.declare(_join("const", ident))
        return "const " + self.elem.declare(ident)

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class EnumType:
    """A C enumeration, referenced by tag only."""
    name: str

    def declare(self, ident: str = "") -> str:
        return _join(self.name, ident)

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class StructType:
    """A C structure, referenced by tag only."""
    name: str

    def declare(self, ident: str = "") -> str:
        return _join(self.name, ident)

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class Typedef:
    """A C type definition; renders by name but keeps the underlying type."""
    name: str
    typ: "CType"

    def declare(self, ident: str = "") -> str:
        return _join(self.name, ident)

    def __str__(self) -> str:
        return self.declare()


@dataclass(frozen=True)
class FuncType:
    """A C function type (subroutine-typed metadata only)."""
    ret_type: "CType"
    param_types: Tuple["CType", ...] = ()
    call_conv: Optional[str] = None

    def declare(self, ident: str = "") -> str:
        params = ", ".join(str(p) for p in self.param_types) or "void"
        inner = _join(self.call_conv or "", ident)
        return self.ret_type.declare(f"{inner}({params})")

    def __str__(self) -> str:
        return self.declare()


CType = Union[BasicType, PointerType, ConstType, EnumType, StructType, Typedef, FuncType]

VOID = BasicType(BasicKind.VOID)


def is_void(t: CType) -> bool:
    """True iff *t* is exactly ``BasicType(void)``."""
    return t == VOID


def _join(left: str, right: str) -> str:
    if not left:
        return right
    if not right:
        return left
    return f"{left} {right}"


__all__ = [
    "BasicKind",
    "BasicType",
    "PointerType",
    "ConstType",
    "EnumType",
    "StructType",
    "Typedef",
    "FuncType",
    "CType",
    "VOID",
    "is_void",
]
