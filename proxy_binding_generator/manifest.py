"""
JSON manifest of a generation run.

Written as <output_dir>/manifest.json next to the generated sources. It
records the generator version, invocation and environment together with
the full symbol set, so two runs can be diffed for ABI changes.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import shlex
import sys
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Dict, Optional, Sequence

from .coverage import CoverageReport
from .models import GenerationContext
from .table import SignatureTable
from .trampolines import Trampoline
from .utils import write_text

logger = logging.getLogger(__name__)

DIST_NAME = "proxy-binding-generator"


def generator_version() -> str:
    try:
        return importlib_metadata.version(DIST_NAME)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def build_manifest(
    ctx: GenerationContext,
    table: SignatureTable,
    trampolines: Sequence[Trampoline],
    coverage: Optional[CoverageReport] = None,
) -> Dict:
    """
    Snapshot of a generation run: generator metadata, invocation, environment,
    context, aliases, per-trampoline data and exclusion notes. Useful for
    debugging and for diffing symbol sets between runs.
    """
    argv = list(getattr(sys, "argv", []) or [])
    command_line = " ".join(shlex.quote(a) for a in argv) if argv else ""

    env_info = {
        "python_version": sys.version,
        "python_executable": sys.executable,
        "platform": platform.platform(),
        "system": platform.system(),
        "machine": platform.machine(),
        "cwd": os.getcwd(),
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }

    outputs = [str(ctx.cpp_path)]
    if ctx.emit_python:
        outputs.append(str(ctx.python_path))

    manifest = {
        "generator": {
            "name": DIST_NAME,
            "version": generator_version(),
        },
        "invocation": {
            "argv": argv,
            "command_line": command_line,
        },
        "environment": env_info,

        "context": ctx.to_dict(),
        "tables": list(table.sources),
        "outputs": outputs,
        "includes": list(table.includes),
        "aliases": [a.to_dict() for a in table.aliases],
        "trampoline_count": len(trampolines),
        "subject_count": len(table.subjects()),
        "trampolines": [t.to_dict() for t in trampolines],
        "exclusions": [e.to_dict() for e in table.exclusions],
    }
    if coverage is not None:
        manifest["coverage"] = coverage.to_dict()
    return manifest


def emit_manifest(
    ctx: GenerationContext,
    table: SignatureTable,
    trampolines: Sequence[Trampoline],
    coverage: Optional[CoverageReport] = None,
) -> Path:
    """
    Write manifest.json next to the generated sources and return its path.
    """
    manifest_path = ctx.output_dir / "manifest.json"
    content = json.dumps(build_manifest(ctx, table, trampolines, coverage), indent=2)
    write_text(manifest_path, content + "\n", dry_run=ctx.dry_run)
    logger.debug("Manifest lists %d trampoline(s) from %s", len(trampolines), ", ".join(table.sources) or "<memory>")
    return manifest_path
