#!/usr/bin/env python3
"""
Proxy binding generator: flat extern "C" trampolines from a signature table.

This entrypoint wires together:
- Table loading (the bundled open.mp table or user *.proxies files)
- Validation and trampoline synthesis
- Emitting (Jinja2-based) the C++ translation unit and, optionally, a Python module
- Optional header scanning (libclang-based) for coverage and draft tables

Outputs:
- <output_dir>/<stem>.cpp
- <optional> <output_dir>/<stem>.py
- <optional> <output_dir>/manifest.json (for introspection)
- <optional> draft table with the discovered methods the table does not declare

Usage (example):
  python -m proxy_binding_generator.generate_bindings \
    --table my_component.proxies \
    --output-dir src/generated \
    --headers path/to/sdk/include \
    --clang-args "-Ipath/to/sdk/include -std=c++17"

Notes:
- You need Jinja2 installed in your Python environment, and libclang for --headers.
"""

from __future__ import annotations

import argparse
import re
import sys
import shlex
from pathlib import Path
from typing import List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

# Local modules
from .coverage import compute_coverage
from .emitters.cpp_emitter import CppEmitterConfig, CppProxyEmitter
from .emitters.python_emitter import PythonEmitterConfig, PythonProxyEmitter
from .errors import GenerationError
from .manifest import emit_manifest
from .models import GenerationContext
from .parsing.clang_parser import alias_composite_types, collect_declarations_from_headers
from .parsing.table_parser import format_table, load_tables
from .trampolines import synthesize_table
from .utils import TemplateRenderer, configure_logging, write_text

HEADER_SUFFIXES = (".h", ".hpp", ".hh", ".hxx")


# --------------------------
# Helpers
# --------------------------

def discover_header_files(paths: List[str]) -> List[Path]:
    """
    Expand files and directories into a unique, sorted list of header files.
    """
    results: List[Path] = []
    for p in paths:
        pp = Path(p)
        if pp.is_file() and pp.suffix.lower() in HEADER_SUFFIXES:
            results.append(pp.resolve())
        elif pp.is_dir():
            for ext in HEADER_SUFFIXES:
                results.extend(sorted(pp.rglob(f"*{ext}")))
        else:
            logger.warning("Skipping non-existent path: %s", p)

    # De-duplicate preserving order
    seen: set[str] = set()
    unique: List[Path] = []
    for f in results:
        s = str(f.resolve())
        if s in seen:
            continue
        seen.add(s)
        unique.append(Path(s))
    return unique


def _split_clang_args(raw: str) -> List[str]:
    try:
        return shlex.split(raw) if raw else []
    except ValueError as ex:
        # Fallback if shlex fails due to platform-specific quoting
        logger.warning("Falling back to naive clang args split due to parsing error: %s", ex)
        return [a for a in raw.split(" ") if a.strip()]


def _resolve_log_level(ns: argparse.Namespace) -> int:
    if ns.log_level:
        return getattr(logging, str(ns.log_level).upper(), logging.INFO)
    if ns.verbose >= 1:
        return logging.DEBUG
    if ns.quiet >= 2:
        return logging.ERROR
    if ns.quiet == 1:
        return logging.WARNING
    return logging.INFO


# --------------------------
# CLI
# --------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate flat extern \"C\" trampolines from a signature table")

    p.add_argument(
        "--table",
        action="append",
        default=[],
        help="Signature table file (*.proxies) to load (repeatable, merged in order). Defaults to the bundled table.",
    )
    p.add_argument(
        "--output-dir",
        default="generated",
        help="Output directory for generated code.",
    )
    p.add_argument(
        "--output-stem",
        default="proxies",
        help="File name stem for generated sources (<stem>.cpp, <stem>.py).",
    )
    p.add_argument(
        "--templates-dir",
        default=None,
        help="Optional templates directory. Templates found there override the package templates.",
    )
    p.add_argument(
        "--export-macro",
        default="SDK_EXPORT",
        help="Macro placed before every exported trampoline (empty to omit).",
    )
    p.add_argument(
        "--calling-convention",
        default="__CDECL",
        help="Calling convention macro placed before every symbol name (empty to omit).",
    )
    p.add_argument(
        "--include",
        action="append",
        default=[],
        help="Extra #include line for the generated translation unit, e.g. '<sdk.hpp>' (repeatable).",
    )
    p.add_argument(
        "--python",
        action="store_true",
        help="Also emit <stem>.py with Python trampolines of the same symbols.",
    )
    p.add_argument(
        "--headers",
        action="append",
        default=[],
        help="Header file or directory to scan for coverage (repeatable). Requires libclang.",
    )
    p.add_argument(
        "--clang-args",
        default="",
        help="Additional clang arguments (e.g., -I/path/include -DDEFINE=1 -std=c++17)",
    )
    p.add_argument(
        "--include-filter",
        action="append",
        default=[],
        help="Only scan classes whose definition file path starts with any of these prefixes. Repeatable.",
    )
    p.add_argument(
        "--exclude-regex",
        default="",
        help="Regex to exclude classes by name when scanning headers.",
    )
    p.add_argument(
        "--draft-table",
        default=None,
        help="Write discovered methods that the table does not declare to this file, in table format.",
    )
    p.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not emit the JSON manifest alongside generated sources.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and report without writing files.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG)."
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (-q for WARNING, -qq for ERROR)."
    )
    p.add_argument(
        "--log-level",
        choices=["CRITICAL","ERROR","WARNING","INFO","DEBUG","NOTSET","critical","error","warning","info","debug","notset"],
        default=None,
        help="Explicit log level (overrides -v/-q)."
    )
    p.add_argument(
        "--log-format",
        default="%(levelname)s: %(message)s",
        help="Logging format string."
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional file to write logs to."
    )

    return p.parse_args(argv)


# --------------------------
# Main
# --------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ns = parse_args(argv)

    # Configure logging as early as possible
    configure_logging(
        level=_resolve_log_level(ns),
        to_file=ns.log_file,
        fmt=ns.log_format,
    )

    ctx = GenerationContext(
        output_dir=Path(ns.output_dir).resolve(),
        templates_dir=Path(ns.templates_dir).resolve() if ns.templates_dir else None,
        output_stem=ns.output_stem,
        export_macro=ns.export_macro,
        calling_convention=ns.calling_convention,
        extra_includes=list(ns.include),
        emit_python=ns.python,
        dry_run=ns.dry_run,
    )

    # Initialize renderer (layered: user dir -> package templates)
    try:
        renderer = TemplateRenderer(ctx.templates_dir)
    except Exception:
        logger.exception("Failed to initialize templating")
        return 1

    # Load and validate the table; nothing is emitted for an invalid table
    try:
        table = load_tables(ns.table)
        trampolines = synthesize_table(table)
    except (GenerationError, OSError) as e:
        logger.error("Invalid signature table: %s", e)
        return 2

    # Optional header scan
    coverage = None
    if ns.headers:
        headers = discover_header_files(ns.headers)
        if not headers:
            logger.error("No headers found to scan under %s", ", ".join(ns.headers))
            return 3
        try:
            discovered = collect_declarations_from_headers(
                headers=headers,
                clang_args=_split_clang_args(ns.clang_args),
                include_filters=ns.include_filter or None,
                exclude_class_regex=re.compile(ns.exclude_regex) if ns.exclude_regex else None,
                section_root=None,
                emit_diagnostics=True,
            )
            coverage = compute_coverage(table, discovered)
            if ns.draft_table:
                aliases, draft = alias_composite_types(coverage.missing, existing=table.aliases)
                content = format_table(
                    draft,
                    aliases=aliases,
                    header_comment="Draft entries for discovered methods that are not declared yet.",
                )
                write_text(Path(ns.draft_table), content, dry_run=ctx.dry_run)
        except Exception:
            logger.exception("Failed to scan headers")
            return 3
    elif ns.draft_table:
        logger.warning("--draft-table has no effect without --headers")

    if ctx.dry_run:
        logger.info("Dry-run complete: %d trampoline(s) validated (no files written).", len(trampolines))
        return 0

    # Emit sources
    try:
        CppProxyEmitter(ctx, renderer, CppEmitterConfig()).emit(table, trampolines)
        if ctx.emit_python:
            PythonProxyEmitter(ctx, renderer, PythonEmitterConfig()).emit(table, trampolines)
    except Exception:
        logger.exception("Failed to generate files")
        return 4

    # Optional: emit a JSON manifest of the generation data for debugging/inspection.
    if not ns.no_manifest:
        try:
            emit_manifest(ctx, table, trampolines, coverage)
        except Exception:
            logger.exception("Failed to emit generation manifest")
            return 5

    return 0


if __name__ == "__main__":
    sys.exit(main())
