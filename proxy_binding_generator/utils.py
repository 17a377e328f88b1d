#!/usr/bin/env python3
"""
Utilities for templating (Jinja2) and file I/O for the proxy binding generator.

This module provides:
- Layered Jinja2 environment creation with a user templates directory and the
  package templates as fallback.
- Template filters that turn trampoline dictionaries into C++ and Python
  parameter lists and call expressions.
- File writing helpers (atomic writes, newline normalization, idempotency).

The goal is to keep the rest of the codebase focused on table handling and
trampoline synthesis.
"""

from __future__ import annotations

import hashlib
import keyword
import os
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TextIO, Union
import logging

from jinja2 import (
    ChoiceLoader,
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateNotFound,
)

logger = logging.getLogger(__name__)

PACKAGE_NAME = "proxy_binding_generator"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        return logging.INFO
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    to_file: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Route all generator logging through the root logger.

    Existing root handlers are replaced, so repeated calls in one process
    never duplicate output. Console output goes to `stream`
    (stderr by default); `to_file` adds a UTF-8 log file truncated per run.
    Returns the package logger.
    """
    resolved_level = _resolve_level(level)
    formatter = logging.Formatter(fmt or "%(levelname)s: %(message)s")

    handlers: List[logging.Handler] = [logging.StreamHandler(stream or sys.stderr)]
    if to_file:
        handlers.append(logging.FileHandler(str(to_file), mode="w", encoding="utf-8"))
    for h in handlers:
        h.setLevel(resolved_level)
        h.setFormatter(formatter)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(resolved_level)

    pkg_logger = logging.getLogger(PACKAGE_NAME)
    pkg_logger.setLevel(resolved_level)
    return pkg_logger


# ----------------------------------------
# Identifier helpers
# ----------------------------------------

_C_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_c_identifier(name: str) -> bool:
    return bool(name) and _C_IDENTIFIER.match(name) is not None


def stable_signature_hash(key: str) -> str:
    """
    Short, stable hash of a signature key (independent of PYTHONHASHSEED).
    """
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]


def alias_name_for(spelling: str) -> str:
    """
    Derive a single-token alias name from a composite type spelling.

    'Pair<int, int>' -> 'PairIntInt'
    'StaticArray<IVehicle*, MAX_VEHICLE_CARRIAGES>' -> 'StaticArrayIVehicleMaxVehicleCarriages'
    """
    words = re.findall(r"[A-Za-z0-9]+", spelling)
    parts: List[str] = []
    for w in words:
        if w in ("const", "std"):
            continue
        if w.isupper() and len(w) > 1:
            w = w.lower()
        parts.append(w[0].upper() + w[1:])
    return "".join(parts) or "Alias"


# ----------------------------------------
# Jinja environment helpers
# ----------------------------------------

class TemplateRenderer:
    """
    A thin wrapper over a Jinja2 Environment with layered loaders and useful filters.
    - templates_dir: user-provided templates directory (highest precedence)
    - package templates: proxy_binding_generator/templates
    """

    def __init__(self, templates_dir: Optional[Path] = None) -> None:
        loaders: List[Any] = []

        # 1) User-provided directory
        if templates_dir:
            p = Path(templates_dir)
            if p.is_dir():
                loaders.append(FileSystemLoader(str(p)))
            else:
                logger.warning("Templates directory %s does not exist; using package templates", p)

        # 2) Package templates (installed alongside this module)
        try:
            loaders.append(PackageLoader(PACKAGE_NAME, "templates"))
        except Exception:
            # Namespace or zipped installs may not be resolvable by PackageLoader
            pkg_templates_fs = Path(__file__).parent / "templates"
            if not pkg_templates_fs.is_dir():
                raise RuntimeError(f"Package templates not found under {pkg_templates_fs}")
            loaders.append(FileSystemLoader(str(pkg_templates_fs)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
            keep_trailing_newline=True,
        )

        self._register_filters()
        self._register_globals()

    # ---- Filters and globals registration ----

    def _register_filters(self) -> None:
        self.env.filters["cpp_param_list"] = _filter_cpp_param_list
        self.env.filters["cpp_call"] = _filter_cpp_call
        self.env.filters["py_param_list"] = _filter_py_param_list
        self.env.filters["py_call"] = _filter_py_call

    def _register_globals(self) -> None:
        self.env.globals["len"] = len

    # ---- Rendering ----

    def render(self, template_name: str, context: Mapping[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as e:
            raise RuntimeError(f"Template not found: {template_name}") from e
        return template.render(**context)


# ----------------------------------------
# Template filter implementations
# ----------------------------------------

def _as_trampoline_dict(t: Any) -> Dict[str, Any]:
    """
    Normalize either a Trampoline object or its dict form.
    """
    if isinstance(t, dict):
        return t
    to_dict = getattr(t, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError("Unsupported trampoline value for template filters; expected dict or Trampoline")


def _filter_cpp_param_list(trampoline_like: Any) -> str:
    """
    Render the C++ parameter list of a trampoline:
    'IActor* subject, int _1, Vector3 _2'
    """
    t = _as_trampoline_dict(trampoline_like)
    parts = [f"{t['subject_parameter_type']} subject"]
    parts.extend(f"{p['type']} {p['name']}" for p in t["formal"])
    return ", ".join(parts)


def _filter_cpp_call(trampoline_like: Any) -> str:
    """
    Render the single forwarded call: 'subject->setSkin(_1)'
    """
    t = _as_trampoline_dict(trampoline_like)
    access = "." if t["subject_by_reference"] else "->"
    return f"subject{access}{t['method_name']}({', '.join(t['actual'])})"


def _filter_py_param_list(trampoline_like: Any) -> str:
    t = _as_trampoline_dict(trampoline_like)
    return ", ".join(["subject"] + list(t["actual"]))


def _filter_py_call(trampoline_like: Any) -> str:
    """
    Render the forwarded call for Python; keyword method names go through getattr.
    """
    t = _as_trampoline_dict(trampoline_like)
    method = t["method_name"]
    args = ", ".join(t["actual"])
    if keyword.iskeyword(method):
        return f"getattr(subject, {method!r})({args})"
    return f"subject.{method}({args})"


# ----------------------------------------
# File I/O helpers
# ----------------------------------------

def ensure_dir(p: Path) -> None:
    Path(p).mkdir(parents=True, exist_ok=True)


_NEWLINES = re.compile(r"\r\n?")


def normalize_newlines(text: str) -> str:
    return _NEWLINES.sub("\n", text)


def _is_unchanged(path: Path, content: str, encoding: str) -> bool:
    if not path.is_file():
        return False
    with path.open("r", encoding=encoding, newline="") as f:
        return normalize_newlines(f.read()) == content


def atomic_write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    mode: Optional[int] = 0o644,
    log: bool = True,
) -> bool:
    """
    Replace `path` with `content` (Unix newlines) in one rename.

    The text goes to a hidden temporary file next to the target first, so a
    reader never sees a half-written trampoline file. A target that already
    holds the same text is left alone, keeping its mtime and sparing
    incremental builds. Returns whether the file was written.
    """
    path = Path(path)
    content = normalize_newlines(content)
    ensure_dir(path.parent)

    if _is_unchanged(path, content, encoding):
        if log:
            logger.debug("Unchanged, not rewritten: %s", path)
        return False

    tmp = tempfile.NamedTemporaryFile(
        "w", encoding=encoding, newline="\n", dir=str(path.parent),
        prefix=f".{path.name}.", suffix=".tmp", delete=False,
    )
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(content)
        if mode is not None:
            tmp_path.chmod(mode)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    if log:
        logger.info("Wrote %s", path)
    return True


def write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    dry_run: bool = False,
    log: bool = True,
) -> bool:
    """
    atomic_write_text unless `dry_run`, in which case only the intent is logged.
    """
    if dry_run:
        if log:
            logger.info("Dry run, would write %s", path)
        return False
    return atomic_write_text(Path(path), content, encoding=encoding, log=log)


__all__ = [
    "TemplateRenderer",
    "alias_name_for",
    "atomic_write_text",
    "configure_logging",
    "ensure_dir",
    "is_c_identifier",
    "normalize_newlines",
    "stable_signature_hash",
    "write_text",
]
