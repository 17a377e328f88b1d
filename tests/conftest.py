"""
Pytest configuration and fixtures for the proxy binding generator tests.

Provides reusable fixtures for:
- A template renderer over the package templates
- A small signature table covering values, references, pointers, overloads and an alias
- Loading a table's Python trampolines in memory
"""

import pytest

from proxy_binding_generator.emitters.python_emitter import load_trampolines
from proxy_binding_generator.models import GenerationContext
from proxy_binding_generator.parsing.table_parser import parse_table_text
from proxy_binding_generator.table import SignatureTable
from proxy_binding_generator.utils import TemplateRenderer


SAMPLE_TABLE = """\
#include <Server/Components/Actors/actors.hpp>
#include <Server/Components/TextLabels/textlabels.hpp>

using IntPair = Pair<int, int>;

// @section include/Server/Components/Actors
PROXY(IActor, void, setSkin, int);
PROXY(IActor, const AnimationData&, getAnimation);
PROXY(IActor, bool, isStreamedInForPlayer, const IPlayer&);
PROXY(IActor, IntPair, getColour);

// @section include/Server/Components/TextLabels
PROXY_OVERLOAD(ITextLabelsComponent, ITextLabel*, create, , StringView, Colour, Vector3, float, int, bool);
PROXY_OVERLOAD(ITextLabelsComponent, ITextLabel*, create, _player, StringView, Colour, Vector3, float, int, bool, IPlayer&);
// @todo: getEventDispatcher
"""


@pytest.fixture
def renderer():
    return TemplateRenderer()


@pytest.fixture
def ctx(tmp_path):
    return GenerationContext(output_dir=tmp_path / "out")


@pytest.fixture
def sample_table():
    return parse_table_text(SAMPLE_TABLE, source="sample.proxies")


@pytest.fixture
def make_table():
    """
    Fixture that returns a function building a table from row tuples.

    Usage:
        table = make_table(("IActor", "void", "setSkin", "int"))
    """
    def _make(*rows, aliases=()):
        table = SignatureTable()
        for name, underlying in aliases:
            table.register_alias(name, underlying)
        for row in rows:
            subject, ret, method, *params = row
            table.declare(subject, ret, method, *params)
        return table
    return _make


@pytest.fixture
def trampolines_for(renderer):
    def _load(table):
        return load_trampolines(table, renderer=renderer)
    return _load
