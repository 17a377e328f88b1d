"""
Header scanning against fake libclang cursors, so no libclang is needed.
"""

import re
from types import SimpleNamespace

import pytest

from proxy_binding_generator.models import MethodDeclaration, TypeAlias
from proxy_binding_generator.parsing import clang_parser
from proxy_binding_generator.parsing.clang_parser import (
    alias_composite_types,
    assign_overload_tags,
    collect_declarations_from_headers,
)

HEADER = "/sdk/include/Server/Components/Actors/actors.hpp"


def _loc(line=1, path=HEADER):
    return SimpleNamespace(file=SimpleNamespace(name=path), line=line)


def _method(name, result="void", params=(), static=False, variadic=False, access="PUBLIC", kind="CXX_METHOD", line=1):
    return SimpleNamespace(
        kind=SimpleNamespace(name=kind),
        spelling=name,
        location=_loc(line),
        access_specifier=SimpleNamespace(name=access),
        result_type=SimpleNamespace(spelling=result),
        type=SimpleNamespace(is_function_variadic=lambda: variadic),
        is_static_method=lambda: static,
        get_arguments=lambda: [SimpleNamespace(type=SimpleNamespace(spelling=p)) for p in params],
        get_children=lambda: [],
    )


def _class(name, children, path=HEADER, parent=None):
    node = SimpleNamespace(
        kind=SimpleNamespace(name="STRUCT_DECL"),
        spelling=name,
        location=_loc(path=path),
        access_specifier=SimpleNamespace(name="PUBLIC"),
        semantic_parent=parent,
        is_definition=lambda: True,
        get_children=lambda: children,
    )
    return node


def _tu(*classes):
    root = SimpleNamespace(
        kind=SimpleNamespace(name="TRANSLATION_UNIT"),
        spelling="tu",
        location=SimpleNamespace(file=None),
        get_children=lambda: list(classes),
    )
    return SimpleNamespace(cursor=root, diagnostics=[])


@pytest.fixture
def fake_clang(monkeypatch):
    """
    Fixture that routes parse_translation_unit to prepared translation units.

    Usage:
        fake_clang({"a.hpp": _tu(...)})
    """
    def _install(units):
        monkeypatch.setattr(clang_parser, "cindex", SimpleNamespace())
        monkeypatch.setattr(clang_parser, "parse_translation_unit", lambda header, args: units[str(header)])
    return _install


def test_collects_public_instance_methods(fake_clang):
    actor = _class("IActor", [
        _method("setSkin", params=["int"], line=10),
        _method("getAnimation", result="const AnimationData &", line=11),
        _method("create", result="IActor *", static=True),
        _method("operator==", result="bool", params=["const IActor &"]),
        _method("hidden", access="PRIVATE"),
        _method("log", params=["const char *"], variadic=True),
        _method("visit", kind="FUNCTION_TEMPLATE"),
    ])
    fake_clang({"a.hpp": _tu(actor)})

    found = collect_declarations_from_headers(["a.hpp"], [], section_root="/sdk")

    assert [d.method_name for d in found] == ["setSkin", "getAnimation"]
    assert found[0].parameters == ("int",)
    assert found[0].origin == f"{HEADER}:10"
    assert found[0].section == "include/Server/Components/Actors"
    assert found[1].return_type == "const AnimationData &"


def test_excluded_and_filtered_classes(fake_clang):
    kept = _class("IActor", [_method("getID", result="int")])
    excluded = _class("IActorImpl", [_method("getID", result="int")])
    elsewhere = _class("IOther", [_method("getID", result="int")], path="/usr/include/other.hpp")
    fake_clang({"a.hpp": _tu(kept, excluded, elsewhere)})

    found = collect_declarations_from_headers(["a.hpp"], [], exclude_class_regex=re.compile("Impl$"))
    assert [d.subject_type for d in found] == ["IActor"]


def test_nested_class_name_is_qualified(fake_clang):
    outer = _class("IPlayerPool", [])
    inner = _class("Entry", [_method("get", result="int")], parent=outer)
    fake_clang({"a.hpp": _tu(outer, inner)})

    found = collect_declarations_from_headers(["a.hpp"], [])
    assert found[0].subject_type == "IPlayerPool::Entry"
    assert found[0].symbol == "IPlayerPool_Entry_get"


def test_classes_seen_from_several_headers_are_kept_once(fake_clang):
    actor = _class("IActor", [_method("getID", result="int")])
    fake_clang({"a.hpp": _tu(actor), "b.hpp": _tu(actor)})
    found = collect_declarations_from_headers(["a.hpp", "b.hpp"], [])
    assert len(found) == 1


def test_missing_libclang_is_reported(monkeypatch):
    monkeypatch.setattr(clang_parser, "cindex", None)
    with pytest.raises(RuntimeError, match="libclang"):
        collect_declarations_from_headers(["a.hpp"], [])


def test_overload_tags_are_deterministic():
    methods = [
        MethodDeclaration("ITextLabelsComponent", "ITextLabel*", "create", ("StringView", "IPlayer&")),
        MethodDeclaration("ITextLabelsComponent", "int", "count"),
        MethodDeclaration("ITextLabelsComponent", "ITextLabel*", "create", ("StringView",)),
    ]
    tagged = assign_overload_tags(methods)
    assert [d.overload_tag for d in tagged] == ["_1", "", ""]
    assert tagged[2].symbol == "ITextLabelsComponent_create"
    assert tagged[0].symbol == "ITextLabelsComponent_create_1"


def test_composite_types_are_aliased():
    decls = [
        MethodDeclaration("IVehicle", "Pair<int, int>", "getColour"),
        MethodDeclaration("IVehicle", "void", "setColour", ("const Pair<int, int>&",)),
        MethodDeclaration("IVehicle", "void", "setCarriages", ("StaticArray<IVehicle *, MAX_VEHICLE_CARRIAGES> &",)),
    ]
    aliases, rewritten = alias_composite_types(decls)
    assert [(a.name, a.underlying) for a in aliases] == [
        ("PairIntInt", "Pair<int, int>"),
        ("StaticArrayIVehicleMaxVehicleCarriages", "StaticArray<IVehicle *, MAX_VEHICLE_CARRIAGES>"),
    ]
    assert rewritten[0].return_type == "PairIntInt"
    assert rewritten[1].parameters == ("const PairIntInt&",)
    assert rewritten[2].parameters == ("StaticArrayIVehicleMaxVehicleCarriages&",)


def test_existing_aliases_are_reused():
    aliases, rewritten = alias_composite_types(
        [MethodDeclaration("IVehicle", "Pair<int, int>", "getColour")],
        existing=[TypeAlias("IntPair", "Pair<int, int>")],
    )
    assert aliases == []
    assert rewritten[0].return_type == "IntPair"
