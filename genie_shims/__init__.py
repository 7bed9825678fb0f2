"""genie_shims — trampoline recovery from LLVM IR debug metadata.

Given the ``.ll`` output of clang for a set of injected C stubs and the
original executable, recover for every stub the C signature, calling
convention, hooked address and the instruction bytes the hook overwrites.

Submodules
----------
errors
    ``GenieError`` hierarchy with structured ``GENIE-NNNN`` codes.
ctype
    C type terms and their rendering back to C declarators.
ir / ir_parser
    LLVM IR object model and its parsimonious-based textual reader.
type_resolver
    Debug-metadata type nodes → C types.
locals
    Stack slot ↔ C name ↔ C type binding (``llvm.dbg.declare``).
address
    Recovery of the literal stored into the ``addr`` local.
image / patch
    Original-image readers (PE via pefile, flat dumps) and patch bytes.
signature
    ``TrampolineDescriptor`` assembly.
format_verbs
    printf placeholders per C type.
pipeline
    ``TrampolinePipeline`` driving the above per function.

Usage
-----
Programmatic::

    from genie_shims.image import PEImage
    from genie_shims.ir_parser import parse_file
    from genie_shims.pipeline import TrampolinePipeline

    with PEImage("orig.exe") as image:
        report = TrampolinePipeline(image).run(parse_file("stubs.ll"))
    for descriptor in report.descriptors:
        print(descriptor.function_name, hex(descriptor.address))
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "errors",
    "ctype",
    "ir",
    "ir_parser",
    "type_resolver",
    "locals",
    "address",
    "image",
    "patch",
    "signature",
    "format_verbs",
    "pipeline",
]
