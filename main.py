"""ASGI entrypoint: point any ASGI server at ``main:app``.

An installed ``schema-canvas`` distribution is used as-is; from a bare
source checkout the ``src/`` directory is put on the import path first.
"""

from __future__ import annotations

import os
import sys

SRC_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if os.path.isdir(SRC_PATH) and SRC_PATH not in sys.path:
    sys.path.append(SRC_PATH)

from schema_canvas.api import app  # noqa: E402

__all__ = ["app"]
