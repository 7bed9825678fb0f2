"""
genie_shims/pipeline.py
═══════════════════════

Per-function driver: IR function + image → TrampolineDescriptor.

Pipeline Overview
─────────────────
::

    Function ──► collect_locals ──► recover_address ──► extract_original_bytes
                                                              │
                         TrampolineDescriptor ◄── assemble ◄──┘

Functions without a body (``declare``) are skipped. A failure at any step
is reported as ``FunctionProcessingError`` naming the function and the
step; the ``FailurePolicy`` decides whether that aborts the run (the
default) or is recorded and the run continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, TypeVar

from genie_shims.errors import FunctionProcessingError, GenieError
from genie_shims.image import ImageReader
from genie_shims.ir import Function, Module
from genie_shims.address import recover_address
from genie_shims.locals import collect_locals
from genie_shims.patch import PATCH_SIZE, extract_original_bytes
from genie_shims.signature import TrampolineDescriptor, assemble, function_display_name
from genie_shims.type_resolver import TypeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineStep(Enum):
    """The steps of processing one function, in order."""
    COLLECT_LOCALS = "collect locals"
    RECOVER_ADDRESS = "recover address"
    EXTRACT_BYTES = "extract original bytes"
    ASSEMBLE = "assemble signature"


class FailurePolicy(Enum):
    """What a failing function does to the rest of the run."""
    ABORT = "abort"
    SKIP = "skip"


@dataclass
class PipelineReport:
    """Descriptors produced in module order, plus failures under SKIP."""
    descriptors: List[TrampolineDescriptor] = field(default_factory=list)
    failures: List[FunctionProcessingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class TrampolinePipeline:
    """
    Turns every defined function of a module into a descriptor.

    The pipeline holds no per-function state between functions; running it
    twice over the same module and image yields equal descriptors.
    """

    def __init__(
        self,
        reader: ImageReader,
        policy: FailurePolicy = FailurePolicy.ABORT,
        memoize_types: bool = False,
    ) -> None:
        self.reader = reader
        self.policy = policy
        self.memoize_types = memoize_types

    def _step(self, function: Function, step: PipelineStep, action: Callable[[], T]) -> T:
        try:
            return action()
        except GenieError as exc:
            raise FunctionProcessingError(function_display_name(function), step, exc) from exc

    def process_function(self, function: Function) -> TrampolineDescriptor:
        resolver = TypeResolver(memoize=self.memoize_types)
        logger.debug("processing %s", function_display_name(function))
        local_vars = self._step(
            function, PipelineStep.COLLECT_LOCALS,
            lambda: collect_locals(function, resolver),
        )
        address = self._step(
            function, PipelineStep.RECOVER_ADDRESS,
            lambda: recover_address(function, local_vars),
        )
        original = self._step(
            function, PipelineStep.EXTRACT_BYTES,
            lambda: extract_original_bytes(self.reader, address, PATCH_SIZE),
        )
        return self._step(
            function, PipelineStep.ASSEMBLE,
            lambda: assemble(function, local_vars, address, original, resolver),
        )

    def run(self, module: Module) -> PipelineReport:
        report = PipelineReport()
        for function in module.defined_functions():
            try:
                report.descriptors.append(self.process_function(function))
            except FunctionProcessingError as exc:
                if self.policy is FailurePolicy.ABORT:
                    raise
                logger.warning("skipping %s: %s", exc.function_name, exc.cause)
                report.failures.append(exc)
        logger.info(
            "%s: %d trampolines, %d skipped",
            module.source_filename or "<module>",
            len(report.descriptors), len(report.failures),
        )
        return report


__all__ = [
    "PipelineStep",
    "FailurePolicy",
    "PipelineReport",
    "TrampolinePipeline",
]
