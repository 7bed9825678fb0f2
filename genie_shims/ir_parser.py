"""
genie_shims/ir_parser.py
════════════════════════

Reader for textual LLVM IR (``.ll``), producing :mod:`genie_shims.ir`
objects.

Only the parts of a module that trampoline recovery looks at are parsed
structurally:

    * numbered metadata definitions (``!N = [distinct] !DIxxx(...)``,
      tuples and strings);
    * ``define`` / ``declare`` headers: calling convention keyword, name,
      parameters and ``!dbg`` attachments;
    * inside bodies: labels, ``alloca``, ``store``, ``call`` (with
      ``metadata`` operands) and ``#dbg_*`` debug records.

Every other line (target triples, globals, attribute groups, named
metadata, instructions such as ``load`` or ``ret``) is accepted and kept
as text or skipped. A malformed ``define``, ``declare`` or numbered
metadata line is a syntax error rather than being skipped.

Usage::

    from genie_shims.ir_parser import parse_module, parse_file

    module = parse_module(open("foo.ll").read(), source_name="foo.ll")
    for fn in module.defined_functions():
        ...

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from genie_shims.errors import GenieError, IRReadFailure, IRSyntaxError, UndefinedMetadata
from genie_shims.ir import (
    NULL,
    AllocaInst,
    BasicBlock,
    CallInst,
    DbgRecord,
    DIFlag,
    DINode,
    Function,
    GlobalRef,
    IntConst,
    LocalRef,
    MDString,
    MDTuple,
    MetadataArg,
    MetadataRef,
    Module,
    OpaqueValue,
    OtherInst,
    Param,
    StoreInst,
    make_di_node,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — IR GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

IR_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Top-Level Structure
    # ─────────────────────────────────────────────────────────────

    module              = line*
    line                = source_line / metadata_def / function_def
                        / function_decl / blank_line / other_line

    source_line         = hs "source_filename" hs "=" hs string hs nl?
    blank_line          = hs comment? nl
    other_line          = !reserved_start ~r"[^\n]+" nl?
    reserved_start      = hs reserved_word
    reserved_word       = "define" / "declare" / md_ref

    # ─────────────────────────────────────────────────────────────
    # Metadata
    # ─────────────────────────────────────────────────────────────

    metadata_def        = hs md_ref hs "=" hs distinct? md_def_value hs comment? nl?
    distinct            = "distinct" hs
    md_def_value        = md_node / md_tuple / md_string

    md_node             = "!" di_kind "(" hs md_args? hs ")"
    di_kind             = ~r"[A-Za-z][A-Za-z0-9_]*"
    md_args             = md_arg md_more_args
    md_more_args        = (hs "," hs md_arg)*
    md_arg              = md_field / typed_md_value / md_field_value
    md_field            = field_name hs ":" hs md_field_value
    field_name          = ~r"[A-Za-z_][A-Za-z0-9_]*"
    md_field_value      = md_node / md_tuple / md_string / md_ref / md_null
                        / md_bool / string / number / flag_union

    md_tuple            = "!{" hs md_elements? hs "}"
    md_elements         = md_element md_more_elements
    md_more_elements    = (hs "," hs md_element)*
    md_element          = typed_md_value / md_field_value
    typed_md_value      = type hs value

    md_string           = "!" string
    md_ref              = ~r"![0-9]+"
    md_null             = ~r"null(?![A-Za-z0-9_])"
    md_bool             = ~r"(?:true|false)(?![A-Za-z0-9_])"
    flag_union          = flag_name (hs "|" hs flag_name)*
    flag_name           = ~r"[A-Za-z_][A-Za-z0-9_]*"

    # ─────────────────────────────────────────────────────────────
    # Functions
    # ─────────────────────────────────────────────────────────────

    function_def        = hs "define" fn_header hs "{" hs comment? nl body hs "}" hs comment? nl?
    function_decl       = hs "declare" fn_header hs comment? nl?
    fn_header           = header_prefix global_ident hs "(" hs param_list? hs ")" header_suffix
    header_prefix       = ~r"[^@\n]*"
    header_suffix       = suffix_item*
    suffix_item         = hs suffix_entry
    suffix_entry        = fn_attachment / suffix_word
    fn_attachment       = attachment_name hs md_ref
    attachment_name     = ~r"![A-Za-z_][A-Za-z0-9_.]*"
    suffix_word         = ~r'(?:"[^"]*"|[^\s{!"])+'

    param_list          = param more_params
    more_params         = (hs "," hs param)*
    param               = ellipsis / typed_param
    typed_param         = type arg_attrs param_name?
    param_name          = hs local_ident

    # ─────────────────────────────────────────────────────────────
    # Bodies
    # ─────────────────────────────────────────────────────────────

    body                = body_line*
    body_line           = !closing body_entry
    closing             = hs "}"
    body_entry          = block_label / dbg_record / instruction / blank_line

    block_label         = hs label_name ":" hs comment? nl
    label_name          = ~r"[-A-Za-z$._0-9]+" / string

    dbg_record          = hs "#dbg_" dbg_kind "(" hs dbg_args? hs ")" hs comment? nl
    dbg_kind            = ~r"[a-z_]+"
    dbg_args            = dbg_arg more_dbg_args
    more_dbg_args       = (hs "," hs dbg_arg)*
    dbg_arg             = md_node / md_tuple / md_string / md_ref / md_null / typed_value

    instruction         = hs assignment? inst_body nl
    assignment          = local_ident hs "=" hs
    inst_body           = store_inst / call_inst / alloca_inst / other_inst

    store_inst          = "store" hs store_flags typed_value hs "," hs typed_value rest
    store_flags         = store_flag*
    store_flag          = ~r"(?:atomic|volatile)" hs

    call_inst           = tail_kind? "call" call_attrs hs type hs callee hs "(" hs call_args? hs ")" rest
    tail_kind           = ~r"(?:tail|musttail|notail)[ \t]+"
    call_attrs          = call_attr_item*
    call_attr_item      = hs call_attr
    call_attr           = ~r"(?:(?:[a-z_0-9]+cc|fast|nnan|ninf|nsz|arcp|contract|afn|reassoc|noundef|nonnull|zeroext|signext|inreg|noalias)(?![A-Za-z0-9_])|cc[ \t]+[0-9]+|dereferenceable(?:_or_null)?\([0-9]+\)|align[ \t]+[0-9]+)"
    callee              = global_ident / local_ident
    call_args           = call_arg more_call_args
    more_call_args      = (hs "," hs call_arg)*
    call_arg            = metadata_arg / typed_value
    metadata_arg        = "metadata" hs metadata_operand
    metadata_operand    = md_node / md_tuple / md_string / md_ref / md_null / typed_value

    alloca_inst         = "alloca" hs alloca_flags type rest
    alloca_flags        = ~r"(?:inalloca[ \t]+)?"
    other_inst          = opcode rest
    opcode              = ~r"[^\s;]\S*"
    rest                = ~r"[^\n]*"

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type                = base_type type_suffix*
    type_suffix         = ptr_suffix / fn_suffix
    ptr_suffix          = ~r"[ \t]*(?:addrspace\([0-9]+\)[ \t]*)?\*"
    fn_suffix           = hs "(" hs type_list? hs ")"
    base_type           = packed_struct_type / struct_type / array_type / vector_type
                        / ptr_type / named_type / prim_type
    packed_struct_type  = "<{" hs type_list? hs "}>"
    struct_type         = "{" hs type_list? hs "}"
    array_type          = "[" hs number hs "x" hs type hs "]"
    vector_type         = "<" hs vscale? number hs "x" hs type hs ">"
    vscale              = "vscale" hs "x" hs
    ptr_type            = ~r"ptr(?:[ \t]+addrspace\([0-9]+\))?(?![A-Za-z0-9_])"
    named_type          = ~r'%(?:[-A-Za-z$._][-A-Za-z$._0-9]*|[0-9]+|"[^"]*")'
    prim_type           = ~r"(?:i[0-9]+|void|half|bfloat|float|double|x86_fp80|fp128|ppc_fp128|label|metadata|token|x86_mmx|x86_amx|opaque)(?![A-Za-z0-9_])"
    type_list           = type_item (hs "," hs type_item)*
    type_item           = ellipsis / type
    ellipsis            = "..."

    # ─────────────────────────────────────────────────────────────
    # Values
    # ─────────────────────────────────────────────────────────────

    typed_value         = type arg_attrs hs value
    arg_attrs           = arg_attr_item*
    arg_attr_item       = hs arg_attr
    arg_attr            = ~r"(?:(?:noundef|nonnull|signext|zeroext|inreg|noalias|nocapture|readonly|writeonly|readnone|returned|nofree|nest|swiftself|swifterror|swiftasync|immarg|allocalign|allocptr|dead_on_unwind|writable)(?![A-Za-z0-9_])|(?:dereferenceable_or_null|dereferenceable|byval|sret|byref|inalloca|preallocated|elementtype|align|captures|range|nofpclass|initializes)\((?:[^()]|\([^()]*\))*\)|align[ \t]+[0-9]+)"

    value               = local_ident / global_ident / int_lit / bool_lit / opaque_value
    local_ident         = ~r'%(?:[-A-Za-z$._][-A-Za-z$._0-9]*|[0-9]+|"[^"]*")'
    global_ident        = ~r'@(?:[-A-Za-z$._][-A-Za-z$._0-9]*|[0-9]+|"[^"]*")'
    int_lit             = ~r"-?[0-9]+(?![0-9.eEx])"
    bool_lit            = ~r"(?:true|false)(?![A-Za-z0-9_])"
    opaque_value        = opaque_atom+
    opaque_atom         = paren_group / bracket_group / brace_group / ~r"[^,()\[\]{}\n]+"
    paren_group         = "(" balanced* ")"
    bracket_group       = "[" balanced* "]"
    brace_group         = "{" balanced* "}"
    balanced            = paren_group / bracket_group / brace_group / ~r"[^()\[\]{}]+"

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    string              = ~r'"[^"]*"'
    number              = ~r"-?(?:0x[0-9A-Fa-f]+|[0-9]+)"
    comment             = ~r";[^\n]*"
    hs                  = ~r"[ \t]*"
    nl                  = ~r"\r?\n"
''')


# Calling-convention keyword in a define/declare prefix (`x86_stdcallcc`, `cc 64`).
_CC_RE = re.compile(r"(?<![\w.])(?:([a-z_0-9]+cc)|cc[ \t]+([0-9]+))(?![\w.])")

# Trailing `!name !N` attachments of an instruction.
_ATTACHMENT_RE = re.compile(r"!([A-Za-z_][A-Za-z0-9_.]*)[ \t]+(![0-9]+)")

_ESCAPE_RE = re.compile(r"\\([0-9A-Fa-f]{2}|\\)")


def _unescape(text: str) -> str:
    """Decode LLVM's ``\\XX`` / ``\\\\`` string escapes."""
    def repl(match: "re.Match[str]") -> str:
        code = match.group(1)
        return "\\" if code == "\\" else chr(int(code, 16))
    return _ESCAPE_RE.sub(repl, text)


def _ident_name(text: str) -> str:
    """``%x.addr`` → ``x.addr``; ``@"\\01_f@4"`` → ``\\x01_f@4``."""
    name = text[1:]
    if name.startswith('"') and name.endswith('"'):
        name = _unescape(name[1:-1])
    return name


def _attachments_in(text: str) -> Dict[str, Any]:
    return {m.group(1): MetadataRef(m.group(2)) for m in _ATTACHMENT_RE.finditer(text)}


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — PARSE-TREE HELPERS
# ═══════════════════════════════════════════════════════════════════

class _Field:
    """A ``key: value`` argument of a specialised metadata node."""

    __slots__ = ("key", "value")

    def __init__(self, key: str, value: Any) -> None:
        self.key = key
        self.value = value


class _BoolLiteral:
    __slots__ = ("value",)

    def __init__(self, value: bool) -> None:
        self.value = value


class _Label:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name


class _Attachment:
    __slots__ = ("name", "ref")

    def __init__(self, name: str, ref: MetadataRef) -> None:
        self.name = name
        self.ref = ref


class _Header:
    """A parsed ``define``/``declare`` header, before the body is attached."""

    __slots__ = ("function", "unnamed_params")

    def __init__(self, function: Function, unnamed_params: int) -> None:
        self.function = function
        self.unnamed_params = unnamed_params


def _typed(type_text: str, value: Any) -> Any:
    """Attach the IR type to integer literals; other values are untyped."""
    if isinstance(value, _BoolLiteral):
        return IntConst(type_text, int(value.value))
    if isinstance(value, int) and not isinstance(value, bool):
        return IntConst(type_text, value)
    return value


def _optional(result: Any) -> Any:
    """Unwrap an optional (``x?``) child: ``None`` when it did not match."""
    if isinstance(result, list) and result:
        return result[0]
    return None


def _repeated(result: Any, index: int) -> List[Any]:
    """Pick element *index* of every ``(sep item)*`` repetition."""
    if not isinstance(result, list):
        return []
    return [item[index] for item in result]


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — MODULE BUILDER (Parse Tree → genie_shims.ir)
# ═══════════════════════════════════════════════════════════════════

class IRModuleBuilder(NodeVisitor):
    """Transforms the Parsimonious parse tree of a ``.ll`` file into a Module."""

    unwrapped_exceptions = (GenieError,)

    def __init__(self, source_name: str = "<input>") -> None:
        self.source_name = source_name
        self._module = Module()

    def generic_visit(self, node, visited_children):
        """Default: leaves (and empty repetitions) give their text, the rest a list."""
        if not node.children:
            return node.text
        return visited_children

    # ─────────────────────────────────────────────────────────────
    # Module
    # ─────────────────────────────────────────────────────────────

    def visit_module(self, node, visited_children):
        for item in visited_children if isinstance(visited_children, list) else []:
            if isinstance(item, Function):
                self._module.functions.append(item)
        _MetadataLinker(self._module).link()
        return self._module

    def visit_line(self, node, visited_children):
        return visited_children[0]

    def visit_source_line(self, node, visited_children):
        self._module.source_filename = visited_children[5]
        return None

    def visit_blank_line(self, node, visited_children):
        return None

    def visit_other_line(self, node, visited_children):
        return None

    # ─────────────────────────────────────────────────────────────
    # Metadata
    # ─────────────────────────────────────────────────────────────

    def visit_metadata_def(self, node, visited_children):
        _, ref, _, _, _, distinct, value, *_ = visited_children
        value.id = ref.id
        if isinstance(value, (DINode, MDTuple)):
            value.distinct = bool(distinct)
        self._module.metadata[ref.id] = value
        return None

    def visit_md_def_value(self, node, visited_children):
        return visited_children[0]

    def visit_md_node(self, node, visited_children):
        _, kind, _, _, args, _, _ = visited_children
        fields: Dict[str, Any] = {}
        positional: List[Any] = []
        for arg in _optional(args) or []:
            if isinstance(arg, _Field):
                fields[arg.key] = arg.value
            else:
                positional.append(arg)
        return make_di_node(kind, fields=fields, args=positional)

    def visit_md_args(self, node, visited_children):
        first, rest = visited_children
        return [first] + _repeated(rest, 3)

    def visit_md_arg(self, node, visited_children):
        return visited_children[0]

    def visit_md_field(self, node, visited_children):
        key, _, _, _, value = visited_children
        return _Field(key, value)

    def visit_md_field_value(self, node, visited_children):
        return visited_children[0]

    def visit_md_tuple(self, node, visited_children):
        _, _, elements, _, _ = visited_children
        return MDTuple(elements=_optional(elements) or [])

    def visit_md_elements(self, node, visited_children):
        first, rest = visited_children
        return [first] + _repeated(rest, 3)

    def visit_md_element(self, node, visited_children):
        return visited_children[0]

    def visit_typed_md_value(self, node, visited_children):
        type_text, _, value = visited_children
        return _typed(type_text, value)

    def visit_md_string(self, node, visited_children):
        return MDString(visited_children[1])

    def visit_md_ref(self, node, visited_children):
        return MetadataRef(node.text)

    def visit_md_null(self, node, visited_children):
        return NULL

    def visit_md_bool(self, node, visited_children):
        return node.text == "true"

    def visit_flag_union(self, node, visited_children):
        return DIFlag(re.sub(r"\s*\|\s*", " | ", node.text.strip()))

    # ─────────────────────────────────────────────────────────────
    # Functions
    # ─────────────────────────────────────────────────────────────

    def visit_function_def(self, node, visited_children):
        header: _Header = visited_children[2]
        body = visited_children[8]
        function = header.function
        current: Optional[BasicBlock] = None
        for item in body if isinstance(body, list) else []:
            if item is None:
                continue
            if isinstance(item, _Label):
                current = BasicBlock(label=item.name)
                function.blocks.append(current)
                continue
            if current is None:
                # The entry block is unlabelled; LLVM numbers it after the
                # unnamed parameters.
                current = BasicBlock(label=str(header.unnamed_params))
                function.blocks.append(current)
            current.instructions.append(item)
        return function

    def visit_function_decl(self, node, visited_children):
        header: _Header = visited_children[2]
        return header.function

    def visit_fn_header(self, node, visited_children):
        prefix, name, _, _, _, params, _, _, suffix = visited_children
        match = _CC_RE.search(prefix)
        calling_convention = None
        if match:
            calling_convention = match.group(1) or f"cc {match.group(2)}"

        function = Function(name=name.name, calling_convention=calling_convention)
        unnamed = 0
        for param in _optional(params) or []:
            if param is None:
                continue
            param_type, param_name = param
            if param_name is None:
                param_name = str(unnamed)
            if param_name.isdigit():
                unnamed += 1
            function.params.append(Param(type=param_type, name=param_name))

        for entry in suffix if isinstance(suffix, list) else []:
            if isinstance(entry, _Attachment):
                function.metadata_attachments[entry.name] = entry.ref
        return _Header(function, unnamed)

    def visit_suffix_item(self, node, visited_children):
        return visited_children[1]

    def visit_suffix_entry(self, node, visited_children):
        return visited_children[0]

    def visit_fn_attachment(self, node, visited_children):
        name, _, ref = visited_children
        return _Attachment(name[1:], ref)

    def visit_param_list(self, node, visited_children):
        first, rest = visited_children
        return [first] + _repeated(rest, 3)

    def visit_param(self, node, visited_children):
        return visited_children[0]

    def visit_ellipsis(self, node, visited_children):
        return None

    def visit_typed_param(self, node, visited_children):
        type_text, _, name = visited_children
        ref = _optional(name)
        return (type_text, ref.name if ref is not None else None)

    def visit_param_name(self, node, visited_children):
        return visited_children[1]

    # ─────────────────────────────────────────────────────────────
    # Bodies
    # ─────────────────────────────────────────────────────────────

    def visit_body_line(self, node, visited_children):
        return visited_children[1]

    def visit_body_entry(self, node, visited_children):
        return visited_children[0]

    def visit_block_label(self, node, visited_children):
        return _Label(visited_children[1])

    def visit_label_name(self, node, visited_children):
        return visited_children[0]

    def visit_dbg_record(self, node, visited_children):
        kind = visited_children[2]
        args = _optional(visited_children[5]) or []
        return DbgRecord(kind=kind, args=args, text=node.text.strip())

    def visit_dbg_args(self, node, visited_children):
        first, rest = visited_children
        return [first] + _repeated(rest, 3)

    def visit_dbg_arg(self, node, visited_children):
        return visited_children[0]

    def visit_instruction(self, node, visited_children):
        _, assignment, inst, _ = visited_children
        result = _optional(assignment)
        if result is not None:
            inst.result = result
        inst.text = node.text.strip()
        return inst

    def visit_assignment(self, node, visited_children):
        return visited_children[0].name

    def visit_inst_body(self, node, visited_children):
        return visited_children[0]

    def visit_store_inst(self, node, visited_children):
        _, _, flags, src, _, _, _, dst, rest = visited_children
        return StoreInst(
            src=src,
            dst=dst,
            volatile="volatile" in node.children[2].text,
            attachments=_attachments_in(rest),
        )

    def visit_call_inst(self, node, visited_children):
        return_type = visited_children[4]
        callee = visited_children[6]
        args = _optional(visited_children[10]) or []
        rest = visited_children[13]
        return CallInst(
            callee=callee,
            args=args,
            return_type=return_type,
            attachments=_attachments_in(rest),
        )

    def visit_callee(self, node, visited_children):
        return visited_children[0]

    def visit_call_args(self, node, visited_children):
        first, rest = visited_children
        return [first] + _repeated(rest, 3)

    def visit_call_arg(self, node, visited_children):
        return visited_children[0]

    def visit_metadata_arg(self, node, visited_children):
        return MetadataArg(visited_children[2])

    def visit_metadata_operand(self, node, visited_children):
        return visited_children[0]

    def visit_alloca_inst(self, node, visited_children):
        _, _, _, allocated_type, rest = visited_children
        return AllocaInst(allocated_type=allocated_type, attachments=_attachments_in(rest))

    def visit_other_inst(self, node, visited_children):
        opcode, rest = visited_children
        return OtherInst(opcode=opcode, attachments=_attachments_in(rest))

    # ─────────────────────────────────────────────────────────────
    # Types and values
    # ─────────────────────────────────────────────────────────────

    def visit_type(self, node, visited_children):
        return " ".join(node.text.split())

    def visit_typed_value(self, node, visited_children):
        type_text, _, _, value = visited_children
        return _typed(type_text, value)

    def visit_value(self, node, visited_children):
        return visited_children[0]

    def visit_local_ident(self, node, visited_children):
        return LocalRef(_ident_name(node.text))

    def visit_global_ident(self, node, visited_children):
        return GlobalRef(_ident_name(node.text))

    def visit_int_lit(self, node, visited_children):
        return int(node.text)

    def visit_bool_lit(self, node, visited_children):
        return _BoolLiteral(node.text == "true")

    def visit_opaque_value(self, node, visited_children):
        return OpaqueValue(node.text.strip())

    def visit_string(self, node, visited_children):
        return _unescape(node.text[1:-1])

    def visit_number(self, node, visited_children):
        text = node.text
        negative = text.startswith("-")
        digits = text[1:] if negative else text
        value = int(digits, 16) if digits.startswith("0x") else int(digits)
        return -value if negative else value


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — METADATA LINKING
# ═══════════════════════════════════════════════════════════════════

class _MetadataLinker:
    """
    Replaces every ``MetadataRef`` in a freshly parsed module by the node it
    names. Forward references are legal in IR, so this runs once the whole
    file has been read.
    """

    def __init__(self, module: Module) -> None:
        self.module = module
        self.table = module.metadata

    def link(self) -> None:
        for node in list(self.table.values()):
            self._link_in_place(node)
        for function in self.module.functions:
            self._link_attachments(function.metadata_attachments)
            for block in function.blocks:
                for inst in block.instructions:
                    self._link_attachments(inst.attachments)
                    if isinstance(inst, StoreInst):
                        inst.src = self._resolve(inst.src)
                        inst.dst = self._resolve(inst.dst)
                    elif isinstance(inst, (CallInst, DbgRecord)):
                        inst.args = [self._resolve(a) for a in inst.args]

    def _lookup(self, ref: MetadataRef) -> Any:
        try:
            return self.table[ref.id]
        except KeyError:
            raise UndefinedMetadata(ref.id) from None

    def _link_attachments(self, attachments: Dict[str, Any]) -> None:
        for key, value in attachments.items():
            attachments[key] = self._resolve(value)

    def _resolve(self, value: Any) -> Any:
        if isinstance(value, MetadataRef):
            return self._lookup(value)
        if isinstance(value, MetadataArg):
            return MetadataArg(self._resolve(value.value))
        if isinstance(value, (DINode, MDTuple)) and value.id is None:
            # Inline node: owned by its parent, link its own fields.
            self._link_in_place(value)
        return value

    def _link_in_place(self, node: Any) -> None:
        if isinstance(node, DINode):
            for key, value in node.fields.items():
                node.fields[key] = self._resolve(value)
            node.args = [self._resolve(a) for a in node.args]
        elif isinstance(node, MDTuple):
            node.elements = [self._resolve(e) for e in node.elements]


# ═══════════════════════════════════════════════════════════════════
#  PART 5 — PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def parse_module(text: str, source_name: str = "<input>") -> Module:
    """
    Parse textual IR into a linked :class:`Module`.

    Raises:
        IRSyntaxError: the text does not match the grammar.
        UndefinedMetadata: a ``!N`` reference has no definition.
    """
    if text and not text.endswith("\n"):
        text += "\n"
    try:
        tree = IR_GRAMMAR.parse(text)
    except ParseError as exc:
        raise IRSyntaxError(
            f"unable to parse IR near {text[exc.pos:exc.pos + 40].splitlines()[0]!r}"
            if exc.pos < len(text) else "unexpected end of input",
            source_name=source_name,
            line=exc.line(),
            column=exc.column(),
        ) from None

    module = IRModuleBuilder(source_name).visit(tree)
    logger.debug(
        "parsed %s: %d functions, %d metadata nodes",
        source_name, len(module.functions), len(module.metadata),
    )
    return module


def parse_file(path: Union[str, Path]) -> Module:
    """Read and parse a ``.ll`` file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise IRReadFailure(f"unable to read {str(path)!r}: {exc}") from exc
    return parse_module(text, source_name=str(path))


__all__ = [
    "IR_GRAMMAR",
    "IRModuleBuilder",
    "parse_module",
    "parse_file",
]
