"""
genie_shims/ir.py
═════════════════

Object model of an LLVM IR module, as far as trampoline recovery needs it.

The reader in :mod:`genie_shims.ir_parser` builds these objects from
textual IR; tests and other front ends may also build them directly.

Layout
──────
::

    Module
    ├── functions: [Function]
    │   ├── params: [Param]
    │   ├── blocks: [BasicBlock]
    │   │   └── instructions: [AllocaInst | StoreInst | CallInst
    │   │                      | DbgRecord | OtherInst]
    │   └── metadata_attachments: {"dbg": DISubprogram, ...}
    └── metadata: {"!0": node, ...}

Values are ``LocalRef`` (``%x``), ``GlobalRef`` (``@f``), ``IntConst``,
``MetadataArg`` (``metadata …`` call operands) and ``OpaqueValue`` for
anything else. Names are stored without their sigil, the way LLVM's own
``getName()`` reports them.

Metadata nodes keep every field they were written with in ``fields``;
the typed subclasses expose the fields the pipeline reads. After parsing,
``!N`` references inside fields have been replaced by the node objects
themselves, so nodes form a (possibly cyclic) object graph.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — VALUES
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LocalRef:
    """A local identifier such as ``%x.addr`` or ``%0``."""
    name: str

    def __str__(self) -> str:
        return f"%{self.name}"


@dataclass(frozen=True)
class GlobalRef:
    """A global identifier such as ``@main``."""
    name: str

    def __str__(self) -> str:
        return f"@{self.name}"


@dataclass(frozen=True)
class IntConst:
    """An integer literal with its IR type (``i32 4198400``)."""
    type: str
    value: int

    @property
    def bit_width(self) -> Optional[int]:
        if self.type.startswith("i") and self.type[1:].isdigit():
            return int(self.type[1:])
        return None

    def as_unsigned(self) -> int:
        """The literal reinterpreted as an unsigned value of its own width."""
        width = self.bit_width or 64
        return self.value & ((1 << min(width, 64)) - 1)

    def __str__(self) -> str:
        return f"{self.type} {self.value}"


@dataclass(frozen=True)
class MetadataArg:
    """A ``metadata`` call operand wrapping a value or a node."""
    value: Any

    def __str__(self) -> str:
        return f"metadata {self.value}"


@dataclass(frozen=True)
class OpaqueValue:
    """A value this model does not interpret (constant expressions etc.)."""
    text: str

    def __str__(self) -> str:
        return self.text


Value = Union[LocalRef, GlobalRef, IntConst, MetadataArg, OpaqueValue]


def is_named(value: Any) -> bool:
    """True for values that carry a name (locals and globals)."""
    return isinstance(value, (LocalRef, GlobalRef))


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — METADATA
# ═════════════════════════════════════════════════════════════════════════

class NullMetadata:
    """The ``null`` marker; stands for void in type positions."""

    _instance: Optional["NullMetadata"] = None

    def __new__(cls) -> "NullMetadata":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"


NULL = NullMetadata()


@dataclass(frozen=True)
class MetadataRef:
    """An unresolved ``!N`` reference; only present before linking."""
    id: str

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class DIFlag:
    """An enumerator or flag union such as ``DW_TAG_pointer_type``."""
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(eq=False)
class MDString:
    """``!"text"``."""
    value: str
    id: Optional[str] = None


@dataclass(eq=False)
class MDTuple:
    """``!{…}``; elements may be nodes, ``NULL`` or plain values."""
    elements: List[Any] = field(default_factory=list)
    id: Optional[str] = None
    distinct: bool = False


@dataclass(eq=False)
class DINode:
    """
    A specialised debug-info node ``!DIxxx(…)``.

    ``fields`` holds ``key: value`` pairs in source order; positional
    arguments (``!DIExpression(DW_OP_deref)``) are kept in ``args``.
    Identity semantics (``eq=False``): two nodes are the same node only if
    they are the same object.
    """
    kind: str
    fields: Dict[str, Any] = field(default_factory=dict)
    args: List[Any] = field(default_factory=list)
    id: Optional[str] = None
    distinct: bool = False

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    @property
    def name(self) -> str:
        value = self.fields.get("name", "")
        return value if isinstance(value, str) else ""

    @property
    def tag(self) -> str:
        value = self.fields.get("tag")
        return str(value) if value is not None else ""

    def __repr__(self) -> str:
        label = self.id or "<inline>"
        return f"{label} = !{self.kind}(name={self.name!r})"


class DIBasicType(DINode):
    pass


class DIDerivedType(DINode):
    @property
    def base_type(self) -> Any:
        # An absent baseType is how debug info spells `void *`.
        return self.fields.get("baseType", NULL)


class DICompositeType(DINode):
    pass


class DISubroutineType(DINode):
    @property
    def types(self) -> List[Any]:
        value = self.fields.get("types", NULL)
        if isinstance(value, MDTuple):
            return value.elements
        return []

    @property
    def cc(self) -> str:
        value = self.fields.get("cc")
        return str(value) if value is not None else ""


class DISubprogram(DINode):
    @property
    def type(self) -> Any:
        return self.fields.get("type", NULL)


class DILocalVariable(DINode):
    @property
    def type(self) -> Any:
        return self.fields.get("type", NULL)

    @property
    def arg(self) -> int:
        value = self.fields.get("arg", 0)
        return value if isinstance(value, int) else 0


class GenericDINode(DINode):
    """Any DI node kind the pipeline does not read (DIFile, DILocation, …)."""


DI_NODE_CLASSES: Dict[str, type] = {
    "DIBasicType": DIBasicType,
    "DIDerivedType": DIDerivedType,
    "DICompositeType": DICompositeType,
    "DISubroutineType": DISubroutineType,
    "DISubprogram": DISubprogram,
    "DILocalVariable": DILocalVariable,
}


def make_di_node(kind: str, **kwargs: Any) -> DINode:
    """Instantiate the typed node class for *kind*."""
    cls = DI_NODE_CLASSES.get(kind, GenericDINode)
    return cls(kind=kind, **kwargs)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — INSTRUCTIONS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class Instruction:
    """Base class; ``result`` is the defined local name, if any."""
    result: Optional[str] = None
    attachments: Dict[str, Any] = field(default_factory=dict)
    text: str = ""


@dataclass
class AllocaInst(Instruction):
    """``%x = alloca <type>, align N``."""
    allocated_type: str = ""


@dataclass
class StoreInst(Instruction):
    """``store <ty> <src>, <ptr-ty> <dst>``."""
    src: Any = None
    dst: Any = None
    volatile: bool = False


@dataclass
class CallInst(Instruction):
    """``call <ret> <callee>(<args>)``."""
    callee: Any = None
    args: List[Any] = field(default_factory=list)
    return_type: str = ""

    @property
    def callee_name(self) -> str:
        return self.callee.name if is_named(self.callee) else ""


@dataclass
class DbgRecord(Instruction):
    """A debug record (``#dbg_declare(…)``, ``#dbg_value(…)``) of LLVM 19+."""
    kind: str = ""
    args: List[Any] = field(default_factory=list)


@dataclass
class OtherInst(Instruction):
    """Any instruction kept only as text (``ret``, ``load``, ``br`` …)."""
    opcode: str = ""


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — FUNCTIONS AND MODULES
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class Param:
    type: str
    name: str


@dataclass
class BasicBlock:
    label: str
    instructions: List[Instruction] = field(default_factory=list)

    def stores(self) -> Iterator[StoreInst]:
        for inst in self.instructions:
            if isinstance(inst, StoreInst):
                yield inst


@dataclass
class Function:
    """
    A ``define`` (with blocks) or ``declare`` (without).

    ``calling_convention`` is the IR keyword (``x86_stdcallcc``) or
    ``None`` when the function carries no convention keyword.
    """
    name: str
    calling_convention: Optional[str] = None
    params: List[Param] = field(default_factory=list)
    blocks: List[BasicBlock] = field(default_factory=list)
    metadata_attachments: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_body(self) -> bool:
        return bool(self.blocks)

    @property
    def entry(self) -> BasicBlock:
        return self.blocks[0]

    def allocas(self) -> Dict[str, AllocaInst]:
        """Stack slots allocated anywhere in the function, by name."""
        slots: Dict[str, AllocaInst] = {}
        for block in self.blocks:
            for inst in block.instructions:
                if isinstance(inst, AllocaInst) and inst.result is not None:
                    slots[inst.result] = inst
        return slots


@dataclass
class Module:
    source_filename: str = ""
    functions: List[Function] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def function(self, name: str) -> Function:
        for f in self.functions:
            if f.name == name:
                return f
        raise KeyError(name)

    def defined_functions(self) -> Iterator[Function]:
        """Functions with a body, in module order."""
        return (f for f in self.functions if f.has_body)


__all__ = [
    "LocalRef",
    "GlobalRef",
    "IntConst",
    "MetadataArg",
    "OpaqueValue",
    "Value",
    "is_named",
    "NullMetadata",
    "NULL",
    "MetadataRef",
    "DIFlag",
    "MDString",
    "MDTuple",
    "DINode",
    "DIBasicType",
    "DIDerivedType",
    "DICompositeType",
    "DISubroutineType",
    "DISubprogram",
    "DILocalVariable",
    "GenericDINode",
    "make_di_node",
    "Instruction",
    "AllocaInst",
    "StoreInst",
    "CallInst",
    "DbgRecord",
    "OtherInst",
    "Param",
    "BasicBlock",
    "Function",
    "Module",
]
