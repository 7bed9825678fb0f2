"""
genie/codegen.py
================

C code generator for trampoline descriptors.

For every descriptor one C function with the recovered signature is
emitted. Its body:

1. logs the call and its printable arguments with ``genie_log``;
2. keeps the bytes the hook overwrote in a static array;
3. restores them (``genie_unpatch``), calls the original function through a
   pointer to its address and re-installs the hook (``genie_repatch``);
4. returns the original function's result, unless it returns ``void``.

Example output::

    #include "export.h"

    int __stdcall add(int a, int b) {
        static const unsigned char genie_orig[5] = {0x55, 0x8B, 0xEC, 0x8B, 0x45};
        int (__stdcall *genie_fn)(int, int) = (int (__stdcall *)(int, int))0x00401000;
        genie_log("add(a=%d, b=%d)\\n", a, b);
        genie_unpatch((void *)genie_fn, genie_orig, 5);
        int genie_ret = genie_fn(a, b);
        genie_repatch((void *)genie_fn, 5);
        return genie_ret;
    }

``genie_log``, ``genie_unpatch`` and ``genie_repatch`` are provided by the
support header named in the ``#include``.
"""

from __future__ import annotations

from io import StringIO
from typing import Any, Iterable

from genie_shims.ctype import FuncType, PointerType
from genie_shims.format_verbs import format_verb, has_format_verb
from genie_shims.patch import PATCH_SIZE
from genie_shims.signature import TrampolineDescriptor


class CodeEmitter:
    """Line-oriented C emission with indentation management."""

    def __init__(self, indent_str: str = "    ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0

    def emit(self, code: str) -> None:
        """Emit a line of code at the current indentation."""
        if code.strip():
            self._buffer.write(self._indent_str * self._indent_level)
            self._buffer.write(code)
        self._buffer.write("\n")

    def emit_blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._buffer.write("\n")

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    def block(self, header: str) -> "CodeEmitter._BlockContext":
        """Context manager for a braced block: ``header {`` … ``}``."""
        return self._BlockContext(self, header)

    class _BlockContext:

        def __init__(self, emitter: "CodeEmitter", header: str) -> None:
            self._emitter = emitter
            self._header = header

        def __enter__(self) -> "CodeEmitter":
            self._emitter.emit(f"{self._header} {{")
            self._emitter.indent()
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            self._emitter.dedent()
            self._emitter.emit("}")

    def get_code(self) -> str:
        return self._buffer.getvalue()

    @staticmethod
    def escape_string(s: str) -> str:
        """Escape *s* for use inside a C string literal."""
        return s.replace("\\", "\\\\").replace('"', '\\"')


def _join(*parts: str) -> str:
    return " ".join(p for p in parts if p)


def function_type(descriptor: TrampolineDescriptor) -> FuncType:
    """The C function type of the recovered original."""
    return FuncType(
        descriptor.return_type,
        tuple(p.type for p in descriptor.parameters),
        descriptor.calling_convention or None,
    )


def prototype(descriptor: TrampolineDescriptor) -> str:
    """``int __stdcall add(int a, int b)``."""
    params = ", ".join(p.type.declare(p.source_name) for p in descriptor.parameters)
    declarator = _join(descriptor.calling_convention, descriptor.function_name)
    return descriptor.return_type.declare(f"{declarator}({params or 'void'})")


def log_format(descriptor: TrampolineDescriptor) -> str:
    """printf format and arguments logging a call of *descriptor*."""
    printable = [p for p in descriptor.parameters if has_format_verb(p.type)]
    fields = ", ".join(f"{p.source_name}={format_verb(p.type)}" for p in printable)
    name = descriptor.function_name.replace("%", "%%")
    text = CodeEmitter.escape_string(f"{name}({fields})") + "\\n"
    args = "".join(f", {p.source_name}" for p in printable)
    return f'"{text}"{args}'


def emit_trampoline(emitter: CodeEmitter, descriptor: TrampolineDescriptor) -> None:
    width = len(descriptor.original_bytes) or PATCH_SIZE
    fn_ptr = PointerType(function_type(descriptor))
    orig = ", ".join(f"0x{b:02X}" for b in descriptor.original_bytes)
    call_args = ", ".join(p.source_name for p in descriptor.parameters)

    with emitter.block(prototype(descriptor)):
        emitter.emit(f"static const unsigned char genie_orig[{width}] = {{{orig}}};")
        emitter.emit(f"{fn_ptr.declare('genie_fn')} = ({fn_ptr})0x{descriptor.address:08X};")
        emitter.emit(f"genie_log({log_format(descriptor)});")
        emitter.emit(f"genie_unpatch((void *)genie_fn, genie_orig, {width});")
        if descriptor.has_return_value:
            ret = descriptor.return_type.declare("genie_ret")
            emitter.emit(f"{ret} = genie_fn({call_args});")
        else:
            emitter.emit(f"genie_fn({call_args});")
        emitter.emit(f"genie_repatch((void *)genie_fn, {width});")
        if descriptor.has_return_value:
            emitter.emit("return genie_ret;")


def generate_c(descriptors: Iterable[TrampolineDescriptor], header: str = "export.h") -> str:
    """Render a C translation unit with one trampoline per descriptor."""
    emitter = CodeEmitter()
    emitter.emit(f'#include "{CodeEmitter.escape_string(header)}"')
    for descriptor in descriptors:
        emitter.emit_blank()
        emit_trampoline(emitter, descriptor)
    return emitter.get_code()


__all__ = [
    "CodeEmitter",
    "function_type",
    "prototype",
    "log_format",
    "emit_trampoline",
    "generate_c",
]
