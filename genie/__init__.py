"""genie — C trampoline generator.

Command-line front end over :mod:`genie_shims`: reads LLVM IR files and
an original image, and writes C trampolines (or JSON / S-expression dumps
of the recovered descriptors).

Submodules
----------
config
    ``GenieConfig`` built from command-line arguments.
codegen
    ``generate_c``: descriptors → C translation unit.
serialize
    JSON and S-expression (``sexpdata``) dumps.
main
    CLI entry-point (``genie`` console script, ``python -m genie``).
"""

from __future__ import annotations

from genie_shims import __version__

__all__: list[str] = [
    "__version__",
    "config",
    "codegen",
    "serialize",
    "main",
]
