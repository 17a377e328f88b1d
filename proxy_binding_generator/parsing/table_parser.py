#!/usr/bin/env python3
"""
Reader and writer for the textual signature table format (*.proxies).

The format is line oriented and close to the C++ it describes:

    #include <Server/Components/Actors/actors.hpp>
    using IntPair = Pair<int, int>;

    // @section include/Server/Components/Actors
    PROXY(IActor, void, setSkin, int);
    PROXY(IActor, const AnimationData&, getAnimation);
    PROXY_OVERLOAD(ITextLabelsComponent, ITextLabel*, create, _player, StringView, Colour, Vector3, float, int, bool, IPlayer&);
    // @todo: getEventDispatcher
    // @skip: ILogger (variadic)

Declaration arguments are split at commas outside parentheses, the same way
a C preprocessor splits macro arguments. Composite types whose own commas
would be split must be declared with `using` first; the table validation
rejects the pieces otherwise.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..arity import split_top_level
from ..errors import TableSyntaxError
from ..models import Exclusion, ExclusionKind, MethodDeclaration, TypeAlias
from ..table import SignatureTable

logger = logging.getLogger(__name__)

BUNDLED_TABLE = Path(__file__).resolve().parent.parent / "data" / "open_mp.proxies"

_DIRECTIVE = re.compile(r"^//\s*@(?P<name>section|skip|todo)\b\s*:?\s*(?P<rest>.*)$")
_INCLUDE = re.compile(r"^#\s*include\s+(?P<header>[<\"].+[>\"])\s*$")
_ALIAS = re.compile(r"^using\s+(?P<name>[A-Za-z_]\w*)\s*=\s*(?P<underlying>.+?)\s*;?\s*$")
_DECLARATION = re.compile(r"^(?P<macro>PROXY_OVERLOAD|PROXY)\s*\(")


def _strip_trailing_comment(line: str) -> str:
    idx = line.find("//")
    return line if idx < 0 else line[:idx].rstrip()


def _paren_balance(text: str) -> int:
    return text.count("(") - text.count(")")


class _TableReader:
    def __init__(self, source: str) -> None:
        self.source = source
        self.table = SignatureTable()
        self.table.sources.append(source)
        self.section = ""

    def origin(self, line_no: int) -> str:
        return f"{self.source}:{line_no}"

    def read(self, text: str) -> SignatureTable:
        pending: List[str] = []
        pending_start = 0

        for line_no, raw in enumerate(text.splitlines(), start=1):
            line = raw.strip()

            if pending:
                pending.append(_strip_trailing_comment(line))
                joined = " ".join(pending)
                if _paren_balance(joined) <= 0:
                    self._declaration(_DECLARATION.match(joined), joined, pending_start)
                    pending = []
                continue

            if not line:
                continue

            if line.startswith("//"):
                self._comment(line, line_no)
                continue

            if line.startswith("#"):
                m = _INCLUDE.match(line)
                if m:
                    self.table.add_include(m.group("header"))
                else:
                    logger.debug("Ignoring preprocessor line at %s: %s", self.origin(line_no), line)
                continue

            line = _strip_trailing_comment(line)

            m = _ALIAS.match(line)
            if m:
                self.table.register_alias(m.group("name"), m.group("underlying"), origin=self.origin(line_no))
                continue

            m = _DECLARATION.match(line)
            if m:
                if _paren_balance(line) > 0:
                    pending = [line]
                    pending_start = line_no
                else:
                    self._declaration(m, line, line_no)
                continue

            raise TableSyntaxError(f"unrecognized table line: {line!r}", self.origin(line_no))

        if pending:
            raise TableSyntaxError("unterminated declaration at end of table", self.origin(pending_start))

        logger.debug(
            "Read %d declaration(s), %d alias(es) and %d exclusion note(s) from %s",
            len(self.table), len(self.table.aliases), len(self.table.exclusions), self.source,
        )
        return self.table

    def _comment(self, line: str, line_no: int) -> None:
        m = _DIRECTIVE.match(line)
        if not m:
            return
        name, rest = m.group("name"), m.group("rest").strip()
        if name == "section":
            if not rest:
                raise TableSyntaxError("@section requires a name", self.origin(line_no))
            self.section = rest
            return
        kind = ExclusionKind.SKIP if name == "skip" else ExclusionKind.TODO
        self.table.add_exclusion(Exclusion(kind=kind, note=rest, section=self.section, origin=self.origin(line_no)))

    def _declaration(self, m: re.Match, text: str, line_no: int) -> None:
        origin = self.origin(line_no)
        macro = m.group("macro")

        open_idx = m.end() - 1
        depth = 0
        close_idx = -1
        for i in range(open_idx, len(text)):
            if text[i] == "(":
                depth += 1
            elif text[i] == ")":
                depth -= 1
                if depth == 0:
                    close_idx = i
                    break
        if close_idx < 0:
            raise TableSyntaxError(f"unbalanced parentheses in {macro} declaration", origin)
        trailer = text[close_idx + 1:].strip()
        if trailer not in ("", ";"):
            raise TableSyntaxError(f"unexpected text after {macro}(...): {trailer!r}", origin)

        args = split_top_level(text[open_idx + 1:close_idx])
        fixed = 4 if macro == "PROXY_OVERLOAD" else 3
        if len(args) < fixed:
            raise TableSyntaxError(f"{macro} needs at least {fixed} arguments, got {len(args)}", origin)

        subject, return_type, method = args[0], args[1], args[2]
        tag = args[3] if macro == "PROXY_OVERLOAD" else ""
        parameters = args[fixed:]
        # A lone empty argument after the fixed ones is the zero-parameter form: PROXY(IPlayer, unsigned, getPing, )
        if parameters == [""]:
            parameters = []
        for label, value in (("subject type", subject), ("return type", return_type), ("method name", method)):
            if not value:
                raise TableSyntaxError(f"{macro} has an empty {label}", origin)
        if any(not p for p in parameters):
            raise TableSyntaxError(f"{macro} has an empty parameter type", origin)

        self.table.add(
            MethodDeclaration(
                subject_type=subject,
                return_type=return_type,
                method_name=method,
                parameters=tuple(parameters),
                overload_tag=tag,
                section=self.section,
                origin=origin,
            )
        )


# --------------------------
# Public API
# --------------------------

def parse_table_text(text: str, source: str = "<string>") -> SignatureTable:
    """
    Parse table text into a SignatureTable (not yet validated).
    """
    return _TableReader(source).read(text)


def parse_table_file(path: Union[str, Path]) -> SignatureTable:
    p = Path(path)
    return parse_table_text(p.read_text(encoding="utf-8"), source=str(p))


def load_tables(paths: Sequence[Union[str, Path]]) -> SignatureTable:
    """
    Parse and merge several table files in order. Defaults to the bundled table.
    """
    table = SignatureTable()
    for p in paths or [BUNDLED_TABLE]:
        table.merge(parse_table_file(p))
    logger.info("Loaded %d declaration(s) from %d table file(s)", len(table), len(table.sources))
    return table


def format_declaration(decl: MethodDeclaration) -> str:
    if decl.overload_tag:
        args = [decl.subject_type, decl.return_type, decl.method_name, decl.overload_tag]
        macro = "PROXY_OVERLOAD"
    else:
        args = [decl.subject_type, decl.return_type, decl.method_name]
        macro = "PROXY"
    return f"{macro}({', '.join(args + list(decl.parameters))});"


def format_table(
    declarations: Iterable[MethodDeclaration],
    aliases: Iterable[TypeAlias] = (),
    includes: Iterable[str] = (),
    exclusions: Iterable[Exclusion] = (),
    header_comment: Optional[str] = None,
) -> str:
    """
    Write declarations back in table format, grouped by section.
    Exclusion notes are placed at the end of their section.
    """
    aliases = list(aliases)
    includes = list(includes)
    lines: List[str] = []
    if header_comment:
        lines.extend(f"// {ln}" if ln else "//" for ln in header_comment.splitlines())
        lines.append("")
    for inc in includes:
        lines.append(f"#include {inc}")
    if includes:
        lines.append("")
    for alias in aliases:
        lines.append(f"using {alias.name} = {alias.underlying};")
    if aliases:
        lines.append("")

    notes_by_section: Dict[str, List[Exclusion]] = {}
    for ex in exclusions:
        notes_by_section.setdefault(ex.section, []).append(ex)

    def flush_notes(section: str) -> None:
        for ex in notes_by_section.pop(section, []):
            lines.append(f"// @{ex.kind.value}: {ex.note}" if ex.note else f"// @{ex.kind.value}")

    current: Optional[str] = None
    for decl in declarations:
        if decl.section != current:
            if current is not None:
                flush_notes(current)
                lines.append("")
            current = decl.section
            if current:
                lines.append(f"// @section {current}")
        lines.append(format_declaration(decl))
    if current is not None:
        flush_notes(current)
    for section in list(notes_by_section):
        lines.append("")
        if section:
            lines.append(f"// @section {section}")
        flush_notes(section)

    return "\n".join(lines).rstrip() + "\n"


__all__ = [
    "BUNDLED_TABLE",
    "format_declaration",
    "format_table",
    "load_tables",
    "parse_table_file",
    "parse_table_text",
]
