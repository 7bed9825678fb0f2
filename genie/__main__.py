#!/usr/bin/env python3
"""
genie/__main__.py
=================

Entry point for ``python -m genie``.

Pipeline
--------
::

    FILE.ll ──► ir_parser ──► TrampolinePipeline ──► codegen / serialize
                                   ▲
    orig.exe ──► PEImage ──────────┘
"""

import sys

from genie.main import main

if __name__ == "__main__":
    sys.exit(main())
