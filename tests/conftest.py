# tests/conftest.py
"""
Shared fixtures: IR samples, parsed modules and small hand-built functions.

``stubs.ll`` is clang 17 output for two injected stubs (``llvm.dbg.declare``
calls); ``records.ll`` is LLVM 19 output using ``#dbg_declare`` records.
"""

from pathlib import Path

import pytest

from genie_shims.image import RawImage
from genie_shims.ir import (
    AllocaInst,
    BasicBlock,
    CallInst,
    DIBasicType,
    DILocalVariable,
    DISubprogram,
    DISubroutineType,
    Function,
    GlobalRef,
    IntConst,
    LocalRef,
    MDTuple,
    MetadataArg,
    OtherInst,
    Param,
    StoreInst,
)
from genie_shims.ir_parser import parse_module

DATA_DIR = Path(__file__).parent / "data"

ADD_ADDRESS = 0x00401000
LOG_MSG_ADDRESS = 0x00401050
IMAGE_BASE = 0x00400000
PROLOGUE = bytes([0x55, 0x8B, 0xEC, 0x8B, 0x45])


@pytest.fixture
def data_dir():
    return DATA_DIR


@pytest.fixture
def stubs_ll():
    return (DATA_DIR / "stubs.ll").read_text(encoding="utf-8")


@pytest.fixture
def records_ll():
    return (DATA_DIR / "records.ll").read_text(encoding="utf-8")


@pytest.fixture
def stubs_module(stubs_ll):
    return parse_module(stubs_ll, source_name="stubs.ll")


@pytest.fixture
def records_module(records_ll):
    return parse_module(records_ll, source_name="records.ll")


@pytest.fixture
def dump_bytes():
    """A flat dump covering 0x400000..0x401100 with prologues at both stubs."""
    data = bytearray(0x1100)
    data[ADD_ADDRESS - IMAGE_BASE:ADD_ADDRESS - IMAGE_BASE + 5] = PROLOGUE
    data[LOG_MSG_ADDRESS - IMAGE_BASE:LOG_MSG_ADDRESS - IMAGE_BASE + 5] = b"\x8b\xff\x55\x8b\xec"
    return bytes(data)


@pytest.fixture
def raw_image(dump_bytes):
    return RawImage(dump_bytes, IMAGE_BASE)


def _declare(slot: str, var) -> CallInst:
    return CallInst(
        callee=GlobalRef("llvm.dbg.declare"),
        args=[MetadataArg(LocalRef(slot)), MetadataArg(var)],
        return_type="void",
    )


@pytest.fixture
def int_type():
    return DIBasicType(kind="DIBasicType", fields={"name": "int"})


@pytest.fixture
def make_stub(int_type):
    """
    Build a single-block stub ``int f(int x) { unsigned addr = <value>; }``
    by hand, with the stored value as given.
    """
    def build(addr_value=IntConst("i32", ADD_ADDRESS), name="f", cc=None):
        uint = DIBasicType(kind="DIBasicType", fields={"name": "unsigned int"})
        x_var = DILocalVariable(kind="DILocalVariable", fields={"name": "x", "arg": 1, "type": int_type})
        addr_var = DILocalVariable(kind="DILocalVariable", fields={"name": "addr", "type": uint})
        subroutine = DISubroutineType(
            kind="DISubroutineType",
            fields={"types": MDTuple(elements=[int_type, int_type])},
        )
        subprogram = DISubprogram(kind="DISubprogram", fields={"name": name, "type": subroutine})
        block = BasicBlock("entry", [
            AllocaInst(result="x.addr", allocated_type="i32"),
            AllocaInst(result="addr", allocated_type="i32"),
            StoreInst(src=LocalRef("x"), dst=LocalRef("x.addr")),
            _declare("x.addr", x_var),
            _declare("addr", addr_var),
            StoreInst(src=addr_value, dst=LocalRef("addr")),
            OtherInst(opcode="ret"),
        ])
        return Function(
            name=name,
            calling_convention=cc,
            params=[Param("i32", "x")],
            blocks=[block],
            metadata_attachments={"dbg": subprogram},
        )
    return build
