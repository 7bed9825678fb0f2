"""genie/config.py — run configuration for the ``genie`` command."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import List, Optional

from genie_shims.pipeline import FailurePolicy

OUTPUT_FORMATS = ("c", "json", "sexp")


@dataclass
class GenieConfig:
    """Everything one ``genie`` invocation needs."""
    ll_paths: List[str] = field(default_factory=list)
    orig_path: Optional[str] = None
    raw_path: Optional[str] = None
    base_address: Optional[int] = None
    output: Optional[str] = None
    output_format: str = "c"
    header: str = "export.h"
    policy: FailurePolicy = FailurePolicy.ABORT
    verbosity: int = 0
    memoize_types: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "GenieConfig":
        orig_path = args.orig
        if orig_path is None and args.raw is None:
            orig_path = "orig.exe"
        return cls(
            ll_paths=list(args.files),
            orig_path=orig_path,
            raw_path=args.raw,
            base_address=args.base,
            output=args.output,
            output_format=args.format,
            header=args.header,
            policy=FailurePolicy.SKIP if args.keep_going else FailurePolicy.ABORT,
            verbosity=args.verbose,
            memoize_types=args.memoize_types,
        )

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty if valid)."""
        problems: List[str] = []
        if not self.ll_paths:
            problems.append("no input .ll files given")
        if self.orig_path is not None and self.raw_path is not None:
            problems.append("--orig and --raw are mutually exclusive")
        if self.raw_path is not None and self.base_address is None:
            problems.append("--raw requires --base")
        if self.base_address is not None and self.base_address < 0:
            problems.append("--base must be non-negative")
        if self.output_format not in OUTPUT_FORMATS:
            problems.append(f"unknown output format {self.output_format!r}")
        if not self.header:
            problems.append("header name must not be empty")
        return problems


__all__ = ["OUTPUT_FORMATS", "GenieConfig"]
