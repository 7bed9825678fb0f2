"""
genie/serialize.py
==================

Machine-readable dumps of trampoline descriptors.

* JSON: one object per descriptor (``descriptor_to_dict``).
* S-expressions: one ``(trampoline ...)`` form per descriptor, via
  ``sexpdata``::

    (trampoline
      (name "add") (cc "__stdcall") (return "int") (has-return true)
      (address 4198400)
      (params (param "a.addr" "a" "int") (param "b.addr" "b" "int"))
      (bytes "55 8b ec 8b 45"))
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

import sexpdata
from sexpdata import Symbol

from genie_shims.signature import TrampolineDescriptor


def descriptor_to_dict(descriptor: TrampolineDescriptor) -> Dict[str, Any]:
    return {
        "function_name": descriptor.function_name,
        "calling_convention": descriptor.calling_convention,
        "return_type": str(descriptor.return_type),
        "has_return_value": descriptor.has_return_value,
        "address": descriptor.address,
        "address_hex": f"0x{descriptor.address:08X}",
        "parameters": [
            {"ir_name": p.ir_name, "source_name": p.source_name, "type": str(p.type)}
            for p in descriptor.parameters
        ],
        "original_bytes": descriptor.original_bytes.hex(" "),
    }


def dumps_json(descriptors: Iterable[TrampolineDescriptor], indent: int = 2) -> str:
    return json.dumps([descriptor_to_dict(d) for d in descriptors], indent=indent) + "\n"


def descriptor_to_sexp(descriptor: TrampolineDescriptor) -> List[Any]:
    """The descriptor as nested lists ready for ``sexpdata.dumps``."""
    params = [
        [Symbol("param"), p.ir_name, p.source_name, str(p.type)]
        for p in descriptor.parameters
    ]
    return [
        Symbol("trampoline"),
        [Symbol("name"), descriptor.function_name],
        [Symbol("cc"), descriptor.calling_convention],
        [Symbol("return"), str(descriptor.return_type)],
        [Symbol("has-return"), Symbol("true" if descriptor.has_return_value else "false")],
        [Symbol("address"), descriptor.address],
        [Symbol("params")] + params,
        [Symbol("bytes"), descriptor.original_bytes.hex(" ")],
    ]


def dumps_sexp(descriptors: Iterable[TrampolineDescriptor]) -> str:
    return "".join(sexpdata.dumps(descriptor_to_sexp(d)) + "\n" for d in descriptors)


__all__ = [
    "descriptor_to_dict",
    "dumps_json",
    "descriptor_to_sexp",
    "dumps_sexp",
]
