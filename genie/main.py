#!/usr/bin/env python3
"""genie/main.py — CLI entry-point for trampoline generation.

Usage examples
--------------
    # C trampolines for every stub in stubs.ll, patch bytes from orig.exe
    genie --orig orig.exe -o export.c stubs.ll

    # Same, from a flat memory dump loaded at 0x00400000
    genie --raw dump.bin --base 0x00400000 stubs.ll

    # Inspect what was recovered instead of generating C
    genie --orig orig.exe --format json stubs.ll

    # Skip (and report) functions that cannot be processed
    genie --orig orig.exe --keep-going stubs.ll other.ll

Exit codes
----------
    0   Success.
    1   One or more functions could not be turned into a trampoline.
    2   Infrastructure failure (bad arguments, missing or malformed input,
        unreadable image).

The module doubles as ``python -m genie`` via the companion
``genie/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence, TextIO, Union

from genie import __version__
from genie.codegen import generate_c
from genie.config import OUTPUT_FORMATS, GenieConfig
from genie.serialize import dumps_json, dumps_sexp
from genie_shims.errors import FunctionProcessingError, ImageReadFailure, IRReadFailure
from genie_shims.image import PEImage, RawImage
from genie_shims.ir_parser import parse_file
from genie_shims.pipeline import TrampolinePipeline
from genie_shims.signature import TrampolineDescriptor

_log = logging.getLogger("genie")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

_LOGGERS = ("genie", "genie_shims")


# ===========================================================================
# Utility helpers
# ===========================================================================

class _CliHandler(logging.StreamHandler):
    """stderr handler installed by :func:`_configure_logging`; replaced on reconfiguration."""


def _configure_logging(verbosity: int) -> None:
    """Set up the ``genie`` and ``genie_shims`` loggers.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = _CliHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    for name in _LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for old in [h for h in logger.handlers if isinstance(h, _CliHandler)]:
            logger.removeHandler(old)
        logger.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _parse_address(text: str) -> int:
    try:
        return int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address {text!r}") from None


def _open_image(config: GenieConfig) -> Union[PEImage, RawImage]:
    if config.raw_path is not None:
        return RawImage.from_file(config.raw_path, config.base_address or 0)
    return PEImage(config.orig_path or "orig.exe")


def render(descriptors: Sequence[TrampolineDescriptor], config: GenieConfig) -> str:
    """Descriptors in the configured output format."""
    if config.output_format == "json":
        return dumps_json(descriptors)
    if config.output_format == "sexp":
        return dumps_sexp(descriptors)
    return generate_c(descriptors, header=config.header)


# ===========================================================================
# Run
# ===========================================================================

def run(config: GenieConfig) -> int:
    """Process every input file and write the combined output."""
    try:
        image = _open_image(config)
    except ImageReadFailure as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    pipeline = TrampolinePipeline(image, config.policy, config.memoize_types)
    descriptors: List[TrampolineDescriptor] = []
    exit_code = EXIT_OK
    try:
        for ll_path in config.ll_paths:
            _log.info("Parsing %s", ll_path)
            try:
                module = parse_file(ll_path)
            except IRReadFailure as exc:
                _log.error("%s", exc)
                return EXIT_INFRA
            try:
                report = pipeline.run(module)
            except FunctionProcessingError as exc:
                _log.error("%s: %s", ll_path, exc)
                return EXIT_ERROR
            if report.failures:
                exit_code = EXIT_ERROR
            descriptors.extend(report.descriptors)
    finally:
        image.close()

    out = _open_output(config.output)
    try:
        out.write(render(descriptors, config))
    finally:
        if out is not sys.stdout:
            out.close()
    return exit_code


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genie",
        description=(
            "Generate C trampolines for injected stubs from LLVM IR debug\n"
            "metadata and the original executable."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              genie --orig orig.exe -o export.c stubs.ll
              genie --raw dump.bin --base 0x400000 --format json stubs.ll
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE.ll",
        help="LLVM IR assembly files to process.",
    )

    image = parser.add_argument_group("original image")
    image.add_argument(
        "--orig",
        default=None,
        metavar="PATH",
        help="Path to original PE binary executable (default: orig.exe).",
    )
    image.add_argument(
        "--raw",
        default=None,
        metavar="PATH",
        help="Path to a flat memory dump instead of a PE file.",
    )
    image.add_argument(
        "--base",
        type=_parse_address,
        default=None,
        metavar="ADDR",
        help="Load address of the --raw dump (e.g. 0x400000).",
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    output.add_argument(
        "-f", "--format",
        choices=OUTPUT_FORMATS,
        default="c",
        help="Output format (default: c).",
    )
    output.add_argument(
        "--header",
        default="export.h",
        metavar="NAME",
        help="Support header included by generated C (default: export.h).",
    )

    behaviour = parser.add_argument_group("behaviour")
    behaviour.add_argument(
        "-k", "--keep-going",
        action="store_true",
        help="Skip functions that fail instead of aborting.",
    )
    behaviour.add_argument(
        "--memoize-types",
        action="store_true",
        help="Cache resolved debug types by node.",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the genie CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA

    _configure_logging(args.verbose)

    config = GenieConfig.from_args(args)
    problems = config.validate()
    if problems:
        for problem in problems:
            _log.error("%s", problem)
        return EXIT_INFRA

    try:
        return run(config)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
