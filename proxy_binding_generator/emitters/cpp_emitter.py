#!/usr/bin/env python3
"""
Emitter module for generating the C++ translation unit of exported trampolines.

This module takes a validated signature table and uses the Jinja2-based
renderer to emit:

- <output_dir>/<stem>.cpp

with one `extern "C"` forwarding function per declaration, preceded by the
table's includes and its type aliases.

Design goals:
- Clean separation of concerns from table parsing and synthesis.
- Atomic, idempotent file writing.
- Configurable template names.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..models import GenerationContext, build_template_context
from ..table import SignatureTable
from ..trampolines import Trampoline, synthesize_table
from ..utils import TemplateRenderer, ensure_dir, write_text

logger = logging.getLogger(__name__)


# --------------------------
# Configuration
# --------------------------

@dataclass(frozen=True)
class CppEmitterConfig:
    """
    Configuration for the C++ trampoline emitter.

    Override the template name to use a custom one from the templates directory.
    """
    source_template: str = "proxies.cpp.j2"


# --------------------------
# Emitter
# --------------------------

class CppProxyEmitter:
    """
    Emit exported C++ trampolines from a signature table.

    Usage:
        emitter = CppProxyEmitter(ctx, renderer, config)
        emitter.emit(table)
    """

    def __init__(self, ctx: GenerationContext, renderer: TemplateRenderer, config: Optional[CppEmitterConfig] = None) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.config = config or CppEmitterConfig()

    # ---- Public API ----

    def render(self, table: SignatureTable, trampolines: Optional[Sequence[Trampoline]] = None) -> str:
        """
        Render the translation unit. Validates and synthesizes unless trampolines are given.
        """
        if trampolines is None:
            trampolines = synthesize_table(table)
        context = build_template_context(self.ctx, table.includes, table.aliases, trampolines)
        return self.renderer.render(self.config.source_template, context)

    def emit(self, table: SignatureTable, trampolines: Optional[Sequence[Trampoline]] = None) -> List[Trampoline]:
        """
        Render and write <stem>.cpp; returns the trampolines that were emitted.
        """
        if trampolines is None:
            trampolines = synthesize_table(table)
        trampolines = list(trampolines)

        ensure_dir(self.ctx.output_dir)
        content = self.render(table, trampolines)
        write_text(self.ctx.cpp_path, content, dry_run=self.ctx.dry_run)

        logger.info("Emitted %d C++ trampoline(s) to %s", len(trampolines), self.ctx.cpp_path)
        return trampolines


__all__ = [
    "CppEmitterConfig",
    "CppProxyEmitter",
]
