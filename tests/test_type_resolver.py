# tests/test_type_resolver.py
"""Tests for debug-metadata type resolution."""

import gc
import logging
from unittest.mock import patch

import pytest

from genie_shims.ctype import (
    VOID,
    BasicKind,
    BasicType,
    ConstType,
    EnumType,
    FuncType,
    PointerType,
    StructType,
    Typedef,
)
from genie_shims.errors import (
    UnsupportedBasicType,
    UnsupportedCompositeTag,
    UnsupportedDerivedTag,
    UnsupportedType,
)
from genie_shims.ir import (
    NULL,
    DIBasicType,
    DICompositeType,
    DIDerivedType,
    DIFlag,
    DISubroutineType,
    GenericDINode,
    MDTuple,
)
from genie_shims.type_resolver import TypeResolver, resolve_type

INT = BasicType(BasicKind.INT)
CHAR = BasicType(BasicKind.CHAR)


def basic(name):
    return DIBasicType(kind="DIBasicType", fields={"name": name})


def derived(tag, base=None, name=None):
    fields = {"tag": DIFlag(tag)}
    if base is not None:
        fields["baseType"] = base
    if name is not None:
        fields["name"] = name
    return DIDerivedType(kind="DIDerivedType", fields=fields)


def composite(tag, name):
    return DICompositeType(kind="DICompositeType", fields={"tag": DIFlag(tag), "name": name})


def subroutine(*types, cc=None):
    fields = {"types": MDTuple(elements=list(types))}
    if cc is not None:
        fields["cc"] = DIFlag(cc)
    return DISubroutineType(kind="DISubroutineType", fields=fields)


class TestBasicAndVoid:

    def test_basic(self):
        assert resolve_type(basic("unsigned int")) == BasicType(BasicKind.UINT)

    def test_null_is_void(self):
        assert resolve_type(NULL) == VOID
        assert resolve_type(None) == VOID

    def test_unknown_basic_name(self):
        with pytest.raises(UnsupportedBasicType):
            resolve_type(basic("_Bool"))


class TestComposite:

    def test_enumeration(self):
        assert resolve_type(composite("DW_TAG_enumeration_type", "color")) == EnumType("color")

    def test_structure(self):
        assert resolve_type(composite("DW_TAG_structure_type", "point")) == StructType("point")

    @pytest.mark.parametrize("tag", ["DW_TAG_union_type", "DW_TAG_array_type", "DW_TAG_class_type"])
    def test_other_tags(self, tag):
        with pytest.raises(UnsupportedCompositeTag) as exc_info:
            resolve_type(composite(tag, "x"))
        assert exc_info.value.tag == tag


class TestDerived:

    def test_pointer_to_const_char(self):
        node = derived("DW_TAG_pointer_type", derived("DW_TAG_const_type", basic("char")))
        assert resolve_type(node) == PointerType(ConstType(CHAR))

    def test_void_pointer(self):
        assert resolve_type(derived("DW_TAG_pointer_type")) == PointerType(VOID)

    def test_typedef_keeps_underlying_type(self):
        node = derived("DW_TAG_typedef", basic("unsigned long"), name="DWORD")
        assert resolve_type(node) == Typedef("DWORD", BasicType(BasicKind.ULONG))

    @pytest.mark.parametrize("tag", ["DW_TAG_member", "DW_TAG_volatile_type", "DW_TAG_reference_type"])
    def test_other_tags(self, tag):
        with pytest.raises(UnsupportedDerivedTag):
            resolve_type(derived(tag, basic("int")))

    def test_failure_in_base_propagates(self):
        with pytest.raises(UnsupportedBasicType):
            resolve_type(derived("DW_TAG_pointer_type", basic("wchar_t")))


class TestSubroutine:

    def test_return_and_params(self):
        node = subroutine(basic("int"), basic("int"), derived("DW_TAG_pointer_type", basic("char")))
        assert resolve_type(node) == FuncType(INT, (INT, PointerType(CHAR)))

    def test_void_return(self):
        assert resolve_type(subroutine(NULL, basic("int"))) == FuncType(VOID, (INT,))

    def test_empty_types(self):
        assert resolve_type(subroutine()) == FuncType(VOID, ())

    def test_calling_convention(self):
        node = subroutine(basic("int"), cc="DW_CC_BORLAND_stdcall")
        assert resolve_type(node).call_conv == "__stdcall"
        node = subroutine(basic("int"), cc="DW_CC_BORLAND_msfastcall")
        assert resolve_type(node).call_conv == "__fastcall"
        assert resolve_type(subroutine(basic("int"), cc="DW_CC_normal")).call_conv is None

    def test_unmapped_calling_convention_is_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="genie_shims.type_resolver")
        node = subroutine(basic("int"), cc="DW_CC_BORLAND_thiscall")
        assert resolve_type(node).call_conv is None
        assert "DW_CC_BORLAND_thiscall" in caplog.text

    def test_no_cc_logs_nothing(self, caplog):
        caplog.set_level(logging.DEBUG, logger="genie_shims.type_resolver")
        resolve_type(subroutine(basic("int")))
        assert "calling convention" not in caplog.text


class TestUnsupportedShapes:

    @pytest.mark.parametrize("node", [
        GenericDINode(kind="DIFile"),
        MDTuple(),
        "int",
        42,
    ], ids=["di_file", "tuple", "string", "int"])
    def test_raises(self, node):
        with pytest.raises(UnsupportedType):
            resolve_type(node)


class TestMemoization:

    def test_results_equal_with_and_without_cache(self, stubs_module):
        node = stubs_module.metadata["!10"]
        assert TypeResolver(memoize=True).resolve(node) == TypeResolver().resolve(node)

    def test_cache_hit_skips_resolution(self):
        resolver = TypeResolver(memoize=True)
        node = basic("int")
        with patch.object(resolver, "_resolve", wraps=resolver._resolve) as spy:
            first = resolver.resolve(node)
            second = resolver.resolve(node)
        assert first == second == INT
        assert spy.call_count == 1

    def test_no_cache_by_default(self):
        resolver = TypeResolver()
        node = basic("int")
        with patch.object(resolver, "_resolve", wraps=resolver._resolve) as spy:
            resolver.resolve(node)
            resolver.resolve(node)
        assert spy.call_count == 2

    def test_shared_node_resolved_once(self, stubs_module):
        resolver = TypeResolver(memoize=True)
        resolver.resolve(stubs_module.metadata["!10"])
        # int appears three times in the subroutine but is cached once
        assert stubs_module.metadata["!12"] in resolver._cache

    def test_fresh_node_never_gets_a_stale_result(self):
        resolver = TypeResolver(memoize=True)
        for _ in range(50):
            first = basic("int")
            assert resolver.resolve(first) == INT
            del first
            gc.collect()
            assert resolver.resolve(basic("char")) == CHAR

    def test_non_node_inputs_bypass_the_cache(self):
        resolver = TypeResolver(memoize=True)
        assert resolver.resolve(NULL) == VOID
        assert resolver.resolve(None) == VOID
        with pytest.raises(UnsupportedType):
            resolver.resolve(MDTuple())
        assert resolver._cache == {}
