#!/usr/bin/env python3
"""
Python rendition of the trampoline set.

The same validated table that produces the exported C++ functions is rendered
as a Python module whose functions carry the same symbol names and the same
positional signatures: `Symbol(subject, _1, ..., _N)` returning
`subject.method(_1, ..., _N)`.

The module can be written next to the C++ output or loaded in memory with
`load_trampolines`, which is how forwarding behaviour is exercised against
test doubles and how Python hosts bind to the symbol set.
"""

from __future__ import annotations

import logging
import types
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..models import GenerationContext, build_template_context
from ..table import SignatureTable
from ..trampolines import Trampoline, synthesize_table
from ..utils import TemplateRenderer, ensure_dir, write_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PythonEmitterConfig:
    module_template: str = "proxies.py.j2"


class PythonProxyEmitter:
    """
    Render (and optionally write) the Python trampoline module.
    """

    def __init__(self, ctx: GenerationContext, renderer: TemplateRenderer, config: Optional[PythonEmitterConfig] = None) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.config = config or PythonEmitterConfig()

    def render(self, table: SignatureTable, trampolines: Optional[Sequence[Trampoline]] = None) -> str:
        if trampolines is None:
            trampolines = synthesize_table(table)
        context = build_template_context(self.ctx, table.includes, table.aliases, trampolines)
        return self.renderer.render(self.config.module_template, context)

    def emit(self, table: SignatureTable, trampolines: Optional[Sequence[Trampoline]] = None) -> List[Trampoline]:
        if trampolines is None:
            trampolines = synthesize_table(table)
        trampolines = list(trampolines)

        ensure_dir(self.ctx.output_dir)
        write_text(self.ctx.python_path, self.render(table, trampolines), dry_run=self.ctx.dry_run)

        logger.info("Emitted %d Python trampoline(s) to %s", len(trampolines), self.ctx.python_path)
        return trampolines


def load_trampolines(
    table: SignatureTable,
    renderer: Optional[TemplateRenderer] = None,
    module_name: str = "proxies",
) -> types.ModuleType:
    """
    Validate the table, render the Python trampolines and compile them into a
    fresh module object (not registered in sys.modules).

        proxies = load_trampolines(table)
        proxies.IActor_setSkin(actor, 42)
    """
    renderer = renderer or TemplateRenderer()
    ctx = GenerationContext(output_dir=Path("."), output_stem=module_name)
    source = PythonProxyEmitter(ctx, renderer).render(table)

    module = types.ModuleType(module_name)
    module.__file__ = f"<{module_name}>"
    code = compile(source, module.__file__, "exec")
    exec(code, module.__dict__)
    logger.debug("Loaded %d Python trampoline(s) into module %s", len(module.__all__), module_name)
    return module


__all__ = [
    "PythonEmitterConfig",
    "PythonProxyEmitter",
    "load_trampolines",
]
