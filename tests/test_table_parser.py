import pytest

from proxy_binding_generator.errors import AliasRequiredError, ArityMismatchError, TableSyntaxError
from proxy_binding_generator.models import ExclusionKind, MethodDeclaration
from proxy_binding_generator.parsing.table_parser import (
    format_declaration,
    format_table,
    load_tables,
    parse_table_file,
    parse_table_text,
)


def test_parse_sample(sample_table):
    assert len(sample_table) == 6
    assert sample_table.includes[0] == "<Server/Components/Actors/actors.hpp>"
    assert sample_table.alias("IntPair").underlying == "Pair<int, int>"

    first = sample_table.declarations[0]
    assert first.key == ("IActor", "setSkin", "")
    assert first.parameters == ("int",)
    assert first.section == "include/Server/Components/Actors"
    assert first.origin == "sample.proxies:7"

    created = sample_table.declarations[-1]
    assert created.overload_tag == "_player"
    assert created.parameters[-1] == "IPlayer&"

    assert [e.kind for e in sample_table.exclusions] == [ExclusionKind.TODO]
    assert sample_table.exclusions[0].names == ("getEventDispatcher",)


def test_multi_line_declaration_and_trailing_comment():
    table = parse_table_text(
        "PROXY(IPlayer, void, setPosition,   // position setter\n"
        "      Vector3);\n"
        "PROXY(IPlayer, int, getID)\n"
    )
    assert [d.symbol for d in table] == ["IPlayer_setPosition", "IPlayer_getID"]
    assert table.declarations[0].parameters == ("Vector3",)


def test_trailing_empty_argument_declares_no_parameters():
    table = parse_table_text("PROXY(IPlayer, unsigned, getPing, ) ;\nPROXY_OVERLOAD(IConfig, void, reload, _all, );\n")
    assert [d.parameters for d in table] == [(), ()]
    assert table.declarations[1].overload_tag == "_all"
    table.validate()


def test_function_pointer_parameter_is_one_argument():
    table = parse_table_text("PROXY(ITimer, void, setHandler, void(*)(int, float));\n")
    assert table.declarations[0].parameters == ("void(*)(int, float)",)
    table.validate()


def test_skip_note_without_text():
    table = parse_table_text("// @section a\n// @skip\nPROXY(A, int, get);\n")
    assert table.exclusions[0].kind is ExclusionKind.SKIP
    assert table.exclusions[0].note == ""
    assert table.exclusions[0].section == "a"


def test_plain_comments_and_other_preprocessor_lines_are_ignored():
    table = parse_table_text("// just a comment\n#pragma once\n\nPROXY(A, int, get);\n")
    assert len(table) == 1


@pytest.mark.parametrize(
    "text,message",
    [
        ("PROXY(A, int);\n", "at least 3"),
        ("PROXY_OVERLOAD(A, int, get);\n", "at least 4"),
        ("PROXY(A, int, get) extra\n", "unexpected text"),
        ("PROXY(A, int, get, , int);\n", "empty parameter"),
        ("PROXY(A, int, get, int, );\n", "empty parameter"),
        ("PROXY(A, , get);\n", "empty return type"),
        ("PROXY(A, int, get,\n", "unterminated"),
        ("int x = 3;\n", "unrecognized"),
        ("// @section\n", "requires a name"),
    ],
)
def test_syntax_errors(text, message):
    with pytest.raises(TableSyntaxError, match=message) as err:
        parse_table_text(text, source="bad.proxies")
    assert str(err.value).startswith("bad.proxies:1: ")


def test_unaliased_composite_is_split_and_rejected():
    table = parse_table_text("PROXY(IVehicle, void, setColour, Pair<int, int>);\n")
    assert table.declarations[0].parameters == ("Pair<int", "int>")
    with pytest.raises(ArityMismatchError) as err:
        table.validate()
    assert not isinstance(err.value, AliasRequiredError)


def test_format_declaration():
    assert format_declaration(MethodDeclaration("IActor", "void", "setSkin", ("int",))) == "PROXY(IActor, void, setSkin, int);"
    assert (
        format_declaration(MethodDeclaration("ITextLabelsComponent", "ITextLabel*", "create", ("StringView",), overload_tag="_player"))
        == "PROXY_OVERLOAD(ITextLabelsComponent, ITextLabel*, create, _player, StringView);"
    )


def test_format_then_parse_preserves_table(sample_table):
    text = format_table(
        sample_table.declarations,
        aliases=sample_table.aliases,
        includes=sample_table.includes,
        exclusions=sample_table.exclusions,
        header_comment="regenerated",
    )
    again = parse_table_text(text)
    assert [d.key for d in again] == [d.key for d in sample_table]
    assert [d.parameters for d in again] == [d.parameters for d in sample_table]
    assert [d.section for d in again] == [d.section for d in sample_table]
    assert again.aliases[0].underlying == "Pair<int, int>"
    assert again.exclusions[0].note == "getEventDispatcher"
    again.validate()


def test_load_tables_merges_files(tmp_path):
    a = tmp_path / "a.proxies"
    b = tmp_path / "b.proxies"
    a.write_text("using IntPair = Pair<int, int>;\nPROXY(IVehicle, IntPair, getColour);\n")
    b.write_text("PROXY(IActor, IntPair, getRange);\n")
    table = load_tables([a, b])
    assert len(table) == 2
    assert table.sources == [str(a), str(b)]
    table.validate()
    assert parse_table_file(b).declarations[0].origin == f"{b}:1"
