# genie_shims/errors.py
"""
Error Types for the Trampoline Recovery Pipeline

Every failure the pipeline can report is a typed, catchable exception. The
resolver, binder, address recoverer, image readers and assembler raise the
most specific subclass; the pipeline driver wraps whatever escapes a single
function in a ``FunctionProcessingError`` naming the function and the step
that failed.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  GenieError (base)                                                          │
│  ├── UnsupportedType          - metadata shape the resolver does not model  │
│  │   ├── UnsupportedBasicType                                               │
│  │   ├── UnsupportedCompositeTag                                            │
│  │   └── UnsupportedDerivedTag                                              │
│  ├── BindingFailure           - parameter → local binding                   │
│  │   ├── ParamBindingNotFound                                               │
│  │   └── DebugInfoMissing                                                   │
│  ├── AddressRecoveryFailure   - the `addr` convention                       │
│  │   ├── UnexpectedControlFlow                                              │
│  │   ├── LocalNotFound                                                      │
│  │   ├── StoreNotFound                                                      │
│  │   └── ConstantTypeMismatch                                               │
│  ├── ImageReadFailure         - original binary image                       │
│  │   ├── AddressOutOfRange                                                  │
│  │   └── ImageIOError                                                       │
│  ├── AssemblyFailure          - descriptor assembly / emission              │
│  │   ├── ReturnTypeNotFound                                                 │
│  │   ├── UnsupportedCallingConvention                                       │
│  │   └── NoFormatVerb                                                       │
│  ├── IRReadFailure            - textual IR input                            │
│  │   ├── IRSyntaxError                                                      │
│  │   └── UndefinedMetadata                                                  │
│  └── FunctionProcessingError  - wrapper added by the pipeline driver        │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error carries a code of the form GENIE-NNNN:
  - 1000-1999: Type resolution
  - 2000-2999: Parameter binding
  - 3000-3999: Address recovery
  - 4000-4999: Image reads
  - 5000-5999: Assembly / emission
  - 6000-6999: IR reading
  - 9000-9999: Pipeline wrapper
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR PHASES AND CODES
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorPhase(Enum):
    """Pipeline phase where the error occurred."""

    TYPES = "types"
    BINDING = "binding"
    ADDRESS = "address"
    IMAGE = "image"
    ASSEMBLY = "assembly"
    IR = "ir"
    PIPELINE = "pipeline"


class ErrorCode:
    """
    Structured error code.

    Codes follow the pattern GENIE-NNNN; the thousands digit selects the
    phase (see the module docstring).
    """

    __slots__ = ("prefix", "number", "phase")

    def __init__(self, number: int, phase: ErrorPhase, prefix: str = "GENIE") -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class GenieErrorCodes:
    """Predefined error codes."""

    # Type resolution (1000-1999)
    UNSUPPORTED_TYPE = ErrorCode(1000, ErrorPhase.TYPES)
    UNSUPPORTED_BASIC_TYPE = ErrorCode(1001, ErrorPhase.TYPES)
    UNSUPPORTED_COMPOSITE_TAG = ErrorCode(1002, ErrorPhase.TYPES)
    UNSUPPORTED_DERIVED_TAG = ErrorCode(1003, ErrorPhase.TYPES)

    # Parameter binding (2000-2999)
    BINDING_FAILURE = ErrorCode(2000, ErrorPhase.BINDING)
    PARAM_BINDING_NOT_FOUND = ErrorCode(2001, ErrorPhase.BINDING)
    DEBUG_INFO_MISSING = ErrorCode(2002, ErrorPhase.BINDING)

    # Address recovery (3000-3999)
    ADDRESS_RECOVERY_FAILURE = ErrorCode(3000, ErrorPhase.ADDRESS)
    UNEXPECTED_CONTROL_FLOW = ErrorCode(3001, ErrorPhase.ADDRESS)
    LOCAL_NOT_FOUND = ErrorCode(3002, ErrorPhase.ADDRESS)
    STORE_NOT_FOUND = ErrorCode(3003, ErrorPhase.ADDRESS)
    CONSTANT_TYPE_MISMATCH = ErrorCode(3004, ErrorPhase.ADDRESS)

    # Image reads (4000-4999)
    IMAGE_READ_FAILURE = ErrorCode(4000, ErrorPhase.IMAGE)
    ADDRESS_OUT_OF_RANGE = ErrorCode(4001, ErrorPhase.IMAGE)
    IMAGE_IO_ERROR = ErrorCode(4002, ErrorPhase.IMAGE)

    # Assembly (5000-5999)
    ASSEMBLY_FAILURE = ErrorCode(5000, ErrorPhase.ASSEMBLY)
    RETURN_TYPE_NOT_FOUND = ErrorCode(5001, ErrorPhase.ASSEMBLY)
    UNSUPPORTED_CALLING_CONVENTION = ErrorCode(5002, ErrorPhase.ASSEMBLY)
    NO_FORMAT_VERB = ErrorCode(5003, ErrorPhase.ASSEMBLY)

    # IR reading (6000-6999)
    IR_READ_FAILURE = ErrorCode(6000, ErrorPhase.IR)
    IR_SYNTAX_ERROR = ErrorCode(6001, ErrorPhase.IR)
    UNDEFINED_METADATA = ErrorCode(6002, ErrorPhase.IR)

    # Pipeline (9000-9999)
    FUNCTION_PROCESSING_ERROR = ErrorCode(9000, ErrorPhase.PIPELINE)


E = GenieErrorCodes


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class GenieError(Exception):
    """
    Base exception for all pipeline errors.

    Carries the structured ``ErrorCode`` and an optional hint; ``str()``
    renders ``GENIE-NNNN: message``.
    """

    default_code: ErrorCode = E.UNSUPPORTED_TYPE

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def with_hint(self, hint: str) -> "GenieError":
        """Attach a hint to this error."""
        self.hint = hint
        return self

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.hint:
            text += f" (hint: {self.hint})"
        return text


# ───────────────────────────────────────────────────────────────────────────────
# TYPE RESOLUTION
# ───────────────────────────────────────────────────────────────────────────────

class UnsupportedType(GenieError):
    """The resolver met a metadata shape it does not model."""

    default_code = E.UNSUPPORTED_TYPE

    def __init__(self, node: Any = None, message: str = "", **kwargs: Any) -> None:
        self.node = node
        if not message:
            message = f"support for type {type(node).__name__} not yet implemented"
        super().__init__(message, **kwargs)


class UnsupportedBasicType(UnsupportedType):
    """A DIBasicType name outside the fixed C basic-type enumeration."""

    default_code = E.UNSUPPORTED_BASIC_TYPE

    def __init__(self, name: str, **kwargs: Any) -> None:
        self.name = name
        super().__init__(message=f"support for basic type {name!r} not yet implemented", **kwargs)


class UnsupportedCompositeTag(UnsupportedType):
    """A DICompositeType tag other than enumeration or structure."""

    default_code = E.UNSUPPORTED_COMPOSITE_TAG

    def __init__(self, tag: str, **kwargs: Any) -> None:
        self.tag = tag
        super().__init__(message=f"support for composite tag {tag} not yet implemented", **kwargs)


class UnsupportedDerivedTag(UnsupportedType):
    """A DIDerivedType tag other than const, pointer or typedef."""

    default_code = E.UNSUPPORTED_DERIVED_TAG

    def __init__(self, tag: str, **kwargs: Any) -> None:
        self.tag = tag
        super().__init__(message=f"support for derived tag {tag} not yet implemented", **kwargs)


# ───────────────────────────────────────────────────────────────────────────────
# PARAMETER BINDING
# ───────────────────────────────────────────────────────────────────────────────

class BindingFailure(GenieError):
    """A parameter could not be bound to a named, typed local."""

    default_code = E.BINDING_FAILURE


class ParamBindingNotFound(BindingFailure):
    """No store of the parameter into a stack slot in the entry block."""

    default_code = E.PARAM_BINDING_NOT_FOUND

    def __init__(self, param_name: str, function_name: str = "", **kwargs: Any) -> None:
        self.param_name = param_name
        self.function_name = function_name
        message = (
            "unable to locate name of stack-allocated local variable "
            f"corresponding to function parameter {param_name!r}"
        )
        if function_name:
            message += f" in function {function_name!r}"
        super().__init__(message, **kwargs)


class DebugInfoMissing(BindingFailure):
    """The stack slot has no debug-declare association."""

    default_code = E.DEBUG_INFO_MISSING

    def __init__(self, local_name: str, function_name: str = "", **kwargs: Any) -> None:
        self.local_name = local_name
        self.function_name = function_name
        message = f"unable to locate debug info of local {local_name!r}"
        if function_name:
            message += f" in function {function_name!r}"
        super().__init__(message, **kwargs)


# ───────────────────────────────────────────────────────────────────────────────
# ADDRESS RECOVERY
# ───────────────────────────────────────────────────────────────────────────────

class AddressRecoveryFailure(GenieError):
    """The injected address could not be recovered."""

    default_code = E.ADDRESS_RECOVERY_FAILURE


class UnexpectedControlFlow(AddressRecoveryFailure):
    """The function does not consist of exactly one basic block."""

    default_code = E.UNEXPECTED_CONTROL_FLOW

    def __init__(self, block_count: int, function_name: str = "", **kwargs: Any) -> None:
        self.block_count = block_count
        self.function_name = function_name
        where = f" in {function_name!r}" if function_name else ""
        super().__init__(
            f"invalid number of basic blocks{where}; expected 1, got {block_count}",
            **kwargs,
        )


class LocalNotFound(AddressRecoveryFailure):
    """No local variable carries the requested source name."""

    default_code = E.LOCAL_NOT_FOUND

    def __init__(self, source_name: str, function_name: str = "", **kwargs: Any) -> None:
        self.source_name = source_name
        self.function_name = function_name
        message = f"unable to locate local variable corresponding to C variable `{source_name}`"
        if function_name:
            message += f" in function {function_name!r}"
        super().__init__(message, **kwargs)


class StoreNotFound(AddressRecoveryFailure):
    """No store writes the `addr` local."""

    default_code = E.STORE_NOT_FOUND

    def __init__(self, local_name: str, function_name: str = "", **kwargs: Any) -> None:
        self.local_name = local_name
        self.function_name = function_name
        message = f"unable to locate `store` instruction of {local_name!r} variable"
        if function_name:
            message += f" in function {function_name!r}"
        super().__init__(message, **kwargs)


class ConstantTypeMismatch(AddressRecoveryFailure):
    """The value stored into `addr` is not an integer literal."""

    default_code = E.CONSTANT_TYPE_MISMATCH

    def __init__(self, value: Any, **kwargs: Any) -> None:
        self.value = value
        super().__init__(
            f"addr constant type mismatch; expected integer constant, got {value}",
            **kwargs,
        )


# ───────────────────────────────────────────────────────────────────────────────
# IMAGE READS
# ───────────────────────────────────────────────────────────────────────────────

class ImageReadFailure(GenieError):
    """The original binary image could not supply the requested bytes."""

    default_code = E.IMAGE_READ_FAILURE


class AddressOutOfRange(ImageReadFailure):
    """The requested range is not mapped by the image."""

    default_code = E.ADDRESS_OUT_OF_RANGE

    def __init__(self, address: int, length: int, **kwargs: Any) -> None:
        self.address = address
        self.length = length
        super().__init__(
            f"address range 0x{address:08X}+{length} is not mapped by the image",
            **kwargs,
        )


class ImageIOError(ImageReadFailure):
    """The image file could not be opened or parsed."""

    default_code = E.IMAGE_IO_ERROR

    def __init__(self, path: str, cause: Optional[BaseException] = None, **kwargs: Any) -> None:
        self.path = path
        self.cause = cause
        message = f"unable to read image {path!r}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, **kwargs)


# ───────────────────────────────────────────────────────────────────────────────
# ASSEMBLY
# ───────────────────────────────────────────────────────────────────────────────

class AssemblyFailure(GenieError):
    """The descriptor could not be assembled or rendered."""

    default_code = E.ASSEMBLY_FAILURE


class ReturnTypeNotFound(AssemblyFailure):
    """No DISubprogram with subroutine type information is attached."""

    default_code = E.RETURN_TYPE_NOT_FOUND

    def __init__(self, function_name: str, **kwargs: Any) -> None:
        self.function_name = function_name
        super().__init__(f"unable to locate return type of function {function_name!r}", **kwargs)


class UnsupportedCallingConvention(AssemblyFailure):
    """The function's calling convention has no C spelling here."""

    default_code = E.UNSUPPORTED_CALLING_CONVENTION

    def __init__(self, calling_convention: str, **kwargs: Any) -> None:
        self.calling_convention = calling_convention
        super().__init__(
            f"support for calling convention {calling_convention} not yet implemented",
            **kwargs,
        )


class NoFormatVerb(AssemblyFailure):
    """The type has no printf placeholder."""

    default_code = E.NO_FORMAT_VERB

    def __init__(self, ctype: Any, **kwargs: Any) -> None:
        self.ctype = ctype
        super().__init__(f"no format verb for type {ctype!r}", **kwargs)


# ───────────────────────────────────────────────────────────────────────────────
# IR READING
# ───────────────────────────────────────────────────────────────────────────────

class IRReadFailure(GenieError):
    """The textual IR could not be turned into a module."""

    default_code = E.IR_READ_FAILURE


class IRSyntaxError(IRReadFailure):
    """The IR text does not match the supported grammar."""

    default_code = E.IR_SYNTAX_ERROR

    def __init__(
        self,
        message: str,
        source_name: str = "<input>",
        line: int = 0,
        column: int = 0,
        **kwargs: Any,
    ) -> None:
        self.source_name = source_name
        self.line = line
        self.column = column
        location = source_name
        if line:
            location += f":{line}:{column}"
        super().__init__(f"{location}: {message}", **kwargs)


class UndefinedMetadata(IRReadFailure):
    """A ``!N`` reference has no definition in the module."""

    default_code = E.UNDEFINED_METADATA

    def __init__(self, ref: str, **kwargs: Any) -> None:
        self.ref = ref
        super().__init__(f"reference to undefined metadata {ref}", **kwargs)


# ───────────────────────────────────────────────────────────────────────────────
# PIPELINE
# ───────────────────────────────────────────────────────────────────────────────

class FunctionProcessingError(GenieError):
    """A function failed at one pipeline step; ``cause`` is the original error."""

    default_code = E.FUNCTION_PROCESSING_ERROR

    def __init__(self, function_name: str, step: Any, cause: GenieError, **kwargs: Any) -> None:
        self.function_name = function_name
        self.step = step
        self.cause = cause
        step_name = getattr(step, "value", step)
        super().__init__(
            f"function {function_name!r}: {step_name} failed: {cause}",
            **kwargs,
        )


__all__ = [
    "ErrorPhase",
    "ErrorCode",
    "GenieErrorCodes",
    "GenieError",
    "UnsupportedType",
    "UnsupportedBasicType",
    "UnsupportedCompositeTag",
    "UnsupportedDerivedTag",
    "BindingFailure",
    "ParamBindingNotFound",
    "DebugInfoMissing",
    "AddressRecoveryFailure",
    "UnexpectedControlFlow",
    "LocalNotFound",
    "StoreNotFound",
    "ConstantTypeMismatch",
    "ImageReadFailure",
    "AddressOutOfRange",
    "ImageIOError",
    "AssemblyFailure",
    "ReturnTypeNotFound",
    "UnsupportedCallingConvention",
    "NoFormatVerb",
    "IRReadFailure",
    "IRSyntaxError",
    "UndefinedMetadata",
    "FunctionProcessingError",
]
