# tests/test_ir_parser.py
"""
Tests for the textual LLVM IR reader.

Covers module-level structure, function headers, instruction bodies in
both debug-declaration styles, metadata linking and error reporting.
"""

import pytest

from genie_shims.errors import IRReadFailure, IRSyntaxError, UndefinedMetadata
from genie_shims.ir import (
    NULL,
    AllocaInst,
    CallInst,
    DbgRecord,
    DIBasicType,
    DIDerivedType,
    DIFlag,
    DILocalVariable,
    DISubprogram,
    DISubroutineType,
    GenericDINode,
    GlobalRef,
    IntConst,
    LocalRef,
    MDString,
    MDTuple,
    MetadataArg,
    OpaqueValue,
    OtherInst,
    StoreInst,
)
from genie_shims.ir_parser import parse_file, parse_module


# ═══════════════════════════════════════════════════════════════════════════
#  MODULE STRUCTURE
# ═══════════════════════════════════════════════════════════════════════════

class TestModuleStructure:

    def test_source_filename(self, stubs_module):
        assert stubs_module.source_filename == "stubs.c"

    def test_functions_in_order(self, stubs_module):
        names = [f.name for f in stubs_module.functions]
        assert names == ["\x01_add@8", "llvm.dbg.declare", "log_msg"]

    def test_declarations_have_no_body(self, stubs_module):
        declare = stubs_module.function("llvm.dbg.declare")
        assert not declare.has_body
        assert [f.name for f in stubs_module.defined_functions()] == ["\x01_add@8", "log_msg"]

    def test_unknown_function_raises_key_error(self, stubs_module):
        with pytest.raises(KeyError):
            stubs_module.function("missing")

    def test_empty_input(self):
        module = parse_module("")
        assert module.functions == []
        assert module.metadata == {}

    def test_missing_trailing_newline(self):
        module = parse_module('source_filename = "a.c"')
        assert module.source_filename == "a.c"

    def test_other_lines_are_ignored(self):
        text = (
            "target triple = \"i386-pc-windows-msvc\"\n"
            "@g = dso_local global i32 0, align 4\n"
            "%struct.point = type { i32, i32 }\n"
            "attributes #0 = { noinline }\n"
            "!llvm.ident = !{!0}\n"
            "!0 = !{!\"clang\"}\n"
        )
        module = parse_module(text)
        assert module.functions == []
        assert isinstance(module.metadata["!0"], MDTuple)


# ═══════════════════════════════════════════════════════════════════════════
#  FUNCTION HEADERS
# ═══════════════════════════════════════════════════════════════════════════

class TestFunctionHeaders:

    def test_quoted_name_is_unescaped(self, stubs_module):
        add = stubs_module.functions[0]
        assert add.name == "\x01_add@8"

    def test_calling_convention_keyword(self, stubs_module, records_module):
        assert stubs_module.functions[0].calling_convention == "x86_stdcallcc"
        assert records_module.functions[0].calling_convention == "x86_fastcallcc"

    def test_no_calling_convention(self, stubs_module):
        assert stubs_module.function("log_msg").calling_convention is None

    def test_numbered_calling_convention(self):
        module = parse_module("declare cc 64 void @f()\n")
        assert module.functions[0].calling_convention == "cc 64"

    def test_params_without_sigil(self, stubs_module):
        add = stubs_module.functions[0]
        assert [(p.type, p.name) for p in add.params] == [("i32", "a"), ("i32", "b")]

    def test_unnamed_declaration_params_are_numbered(self, stubs_module):
        declare = stubs_module.function("llvm.dbg.declare")
        assert [p.name for p in declare.params] == ["0", "1", "2"]
        assert [p.type for p in declare.params] == ["metadata"] * 3

    def test_param_attributes_are_skipped(self, records_module):
        scale = records_module.functions[0]
        assert [(p.type, p.name) for p in scale.params] == [("i32", "0"), ("i32", "factor")]

    def test_varargs(self):
        module = parse_module("declare i32 @printf(ptr noundef, ...)\n")
        assert [p.type for p in module.functions[0].params] == ["ptr"]

    def test_dbg_attachment_is_linked(self, stubs_module):
        subprogram = stubs_module.functions[0].metadata_attachments["dbg"]
        assert isinstance(subprogram, DISubprogram)
        assert subprogram.name == "add"
        assert subprogram.distinct


# ═══════════════════════════════════════════════════════════════════════════
#  BODIES
# ═══════════════════════════════════════════════════════════════════════════

class TestBodies:

    def test_single_labelled_block(self, stubs_module):
        add = stubs_module.functions[0]
        assert [b.label for b in add.blocks] == ["entry"]

    def test_unlabelled_entry_block_is_numbered_after_params(self, records_module):
        scale = records_module.functions[0]
        assert [b.label for b in scale.blocks] == ["1"]

    def test_multiple_blocks(self):
        text = (
            "define void @f(i1 %c) {\n"
            "entry:\n"
            "  br i1 %c, label %then, label %done\n"
            "then:                                             ; preds = %entry\n"
            "  br label %done\n"
            "\n"
            "done:\n"
            "  ret void\n"
            "}\n"
        )
        f = parse_module(text).functions[0]
        assert [b.label for b in f.blocks] == ["entry", "then", "done"]
        assert all(isinstance(i, OtherInst) for b in f.blocks for i in b.instructions)

    def test_allocas(self, stubs_module):
        slots = stubs_module.functions[0].allocas()
        assert sorted(slots) == ["a.addr", "addr", "b.addr"]
        assert all(isinstance(s, AllocaInst) and s.allocated_type == "i32" for s in slots.values())

    def test_stores(self, stubs_module):
        stores = list(stubs_module.functions[0].entry.stores())
        assert [(s.src, s.dst) for s in stores] == [
            (LocalRef("b"), LocalRef("b.addr")),
            (LocalRef("a"), LocalRef("a.addr")),
            (IntConst("i32", 4198400), LocalRef("addr")),
        ]
        assert "dbg" in stores[2].attachments

    def test_volatile_store(self, records_module):
        stores = list(records_module.functions[0].entry.stores())
        assert stores[-1].volatile
        assert stores[-1].src == IntConst("i32", -2147483648)
        assert not stores[0].volatile

    def test_dbg_declare_calls(self, stubs_module):
        calls = [i for i in stubs_module.functions[0].entry.instructions if isinstance(i, CallInst)]
        assert len(calls) == 3
        first = calls[0]
        assert first.callee == GlobalRef("llvm.dbg.declare")
        assert first.callee_name == "llvm.dbg.declare"
        assert first.return_type == "void"
        assert first.args[0] == MetadataArg(LocalRef("b.addr"))
        var = first.args[1].value
        assert isinstance(var, DILocalVariable)
        assert var.name == "b" and var.arg == 2
        assert first.args[2].value.kind == "DIExpression"

    def test_dbg_records(self, records_module):
        records = [i for i in records_module.functions[0].entry.instructions if isinstance(i, DbgRecord)]
        assert [r.kind for r in records] == ["declare"] * 3
        assert records[0].args[0] == LocalRef("2")
        assert isinstance(records[0].args[1], DILocalVariable)
        assert records[0].args[1].name == "n"

    def test_other_instructions_kept_as_text(self, stubs_module):
        last = stubs_module.functions[0].entry.instructions[-1]
        assert isinstance(last, OtherInst)
        assert last.opcode == "ret"
        assert last.text == "ret i32 0, !dbg !22"

    def test_instruction_results(self):
        text = (
            "define i32 @f(ptr %p) {\n"
            "  %v = load i32, ptr %p, align 4\n"
            "  %r = call i32 @g(i32 %v)\n"
            "  ret i32 %r\n"
            "}\n"
        )
        insts = parse_module(text).functions[0].entry.instructions
        assert insts[0].result == "v"
        assert isinstance(insts[1], CallInst)
        assert insts[1].result == "r"
        assert insts[1].args == [LocalRef("v")]

    def test_store_of_non_literal_value(self):
        text = (
            "define void @f() {\n"
            "  %addr = alloca i32, align 4\n"
            "  store i32 ptrtoint (ptr @g to i32), ptr %addr, align 4\n"
            "  ret void\n"
            "}\n"
        )
        store = next(parse_module(text).functions[0].entry.stores())
        assert isinstance(store.src, OpaqueValue)
        assert store.dst == LocalRef("addr")

    def test_typed_pointer_syntax(self):
        text = (
            "define void @f(i8* %p) {\n"
            "  %addr = alloca i32, align 4\n"
            "  store i32 4198400, i32* %addr, align 4\n"
            "  tail call void @g(i8* nonnull %p)\n"
            "  ret void\n"
            "}\n"
        )
        insts = parse_module(text).functions[0].entry.instructions
        assert insts[1].src == IntConst("i32", 4198400)
        assert insts[1].dst == LocalRef("addr")
        assert isinstance(insts[2], CallInst)
        assert insts[2].args == [LocalRef("p")]


# ═══════════════════════════════════════════════════════════════════════════
#  METADATA
# ═══════════════════════════════════════════════════════════════════════════

class TestMetadata:

    def test_typed_nodes(self, stubs_module):
        md = stubs_module.metadata
        assert isinstance(md["!10"], DISubroutineType)
        assert isinstance(md["!12"], DIBasicType)
        assert isinstance(md["!26"], DIDerivedType)
        assert isinstance(md["!1"], GenericDINode)

    def test_fields(self, stubs_module):
        basic = stubs_module.metadata["!12"]
        assert basic.name == "int"
        assert basic.get("size") == 32
        assert basic.get("encoding") == DIFlag("DW_ATE_signed")

    def test_references_are_linked(self, stubs_module):
        md = stubs_module.metadata
        subroutine = md["!10"]
        assert subroutine.cc == "DW_CC_BORLAND_stdcall"
        assert subroutine.types == [md["!12"], md["!12"], md["!12"]]
        assert md["!26"].base_type is md["!28"]

    def test_null_in_tuple(self, stubs_module):
        assert stubs_module.metadata["!25"].elements[0] is NULL

    def test_empty_tuple(self, stubs_module):
        assert stubs_module.metadata["!14"].elements == []

    def test_tuple_values_and_strings(self, stubs_module):
        flag = stubs_module.metadata["!3"]
        assert flag.elements[0] == IntConst("i32", 7)
        assert isinstance(flag.elements[1], MDString)
        assert flag.elements[1].value == "Dwarf Version"

    def test_string_escapes(self, stubs_module):
        assert stubs_module.metadata["!1"].get("directory") == "C:\\genie"

    def test_booleans_and_flag_unions(self, records_module):
        unit = records_module.metadata["!0"]
        assert unit.get("isOptimized") is False
        flags = records_module.metadata["!9"].get("flags")
        assert flags == DIFlag("DIFlagPrototyped | DIFlagAllCallsDescribed")

    def test_forward_references(self):
        text = (
            "!0 = !DIDerivedType(tag: DW_TAG_pointer_type, baseType: !1, size: 32)\n"
            "!1 = !DIBasicType(name: \"char\", size: 8, encoding: DW_ATE_signed_char)\n"
        )
        md = parse_module(text).metadata
        assert md["!0"].base_type is md["!1"]

    def test_absent_base_type_is_null(self):
        md = parse_module("!0 = !DIDerivedType(tag: DW_TAG_pointer_type, size: 32)\n").metadata
        assert md["!0"].base_type is NULL

    def test_positional_arguments(self):
        md = parse_module("!0 = !DIExpression(DW_OP_LLVM_fragment, 0, 32)\n").metadata
        assert md["!0"].args == [DIFlag("DW_OP_LLVM_fragment"), 0, 32]


# ═══════════════════════════════════════════════════════════════════════════
#  ERRORS
# ═══════════════════════════════════════════════════════════════════════════

class TestErrors:

    def test_undefined_metadata(self):
        text = "!0 = !DILocalVariable(name: \"x\", type: !7)\n"
        with pytest.raises(UndefinedMetadata) as exc_info:
            parse_module(text)
        assert exc_info.value.ref == "!7"
        assert exc_info.value.code == "GENIE-6002"

    def test_undefined_attachment(self):
        text = "define void @f() !dbg !3 {\n  ret void\n}\n"
        with pytest.raises(UndefinedMetadata):
            parse_module(text)

    def test_malformed_define(self):
        text = 'source_filename = "a.c"\ndefine void f() {\n  ret void\n}\n'
        with pytest.raises(IRSyntaxError) as exc_info:
            parse_module(text, source_name="a.ll")
        err = exc_info.value
        assert err.source_name == "a.ll"
        assert err.line == 2
        assert str(err).startswith("GENIE-6001: a.ll:2:")

    def test_malformed_metadata(self):
        with pytest.raises(IRSyntaxError):
            parse_module("!0 = !DIBasicType(name: \"int\"\n")

    def test_unterminated_body(self):
        with pytest.raises(IRSyntaxError):
            parse_module("define void @f() {\n  ret void\n")

    def test_syntax_error_is_read_failure(self):
        assert issubclass(IRSyntaxError, IRReadFailure)


class TestParseFile:

    def test_reads_file(self, data_dir):
        module = parse_file(data_dir / "stubs.ll")
        assert module.source_filename == "stubs.c"

    def test_missing_file(self, tmp_path):
        with pytest.raises(IRReadFailure) as exc_info:
            parse_file(tmp_path / "missing.ll")
        assert "missing.ll" in str(exc_info.value)

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "bad.ll"
        path.write_bytes(b"\xff\xfe\x00")
        with pytest.raises(IRReadFailure):
            parse_file(path)
