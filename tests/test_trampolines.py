import pytest

from proxy_binding_generator.errors import DuplicateSymbolError
from proxy_binding_generator.models import MethodDeclaration, TypeCategory
from proxy_binding_generator.trampolines import synthesize, synthesize_table


def test_synthesize_single_declaration():
    t = synthesize(MethodDeclaration("IActor", "void", "setPosition", ("Vector3",)))
    assert t.symbol == "IActor_setPosition"
    assert t.arity == 1
    assert t.formal == (("Vector3", "_1"),)
    assert t.actual == ("_1",)


def test_reference_return_is_kept_verbatim():
    t = synthesize(MethodDeclaration("IActor", "const AnimationData&", "getAnimation"))
    d = t.to_dict()
    assert d["return_type"] == "const AnimationData&"
    assert d["return_category"] == TypeCategory.REFERENCE.value
    assert d["returns_void"] is False
    assert d["formal"] == []


def test_to_dict_describes_the_call():
    t = synthesize(MethodDeclaration("IPlayer&", "bool", "isStreamedInFor", ("const IPlayer&", "int"), origin="x:1"))
    d = t.to_dict()
    assert d["subject_type"] == "IPlayer"
    assert d["subject_parameter_type"] == "IPlayer&"
    assert d["subject_by_reference"] is True
    assert d["formal"] == [{"type": "const IPlayer&", "name": "_1"}, {"type": "int", "name": "_2"}]
    assert d["actual"] == ["_1", "_2"]
    assert d["cpp_signature"] == "bool IPlayer::isStreamedInFor(const IPlayer&, int)"
    assert len(d["signature_hash"]) == 12
    assert d["origin"] == "x:1"


def test_synthesize_table_keeps_table_order(sample_table):
    trampolines = synthesize_table(sample_table)
    assert [t.symbol for t in trampolines] == [
        "IActor_setSkin",
        "IActor_getAnimation",
        "IActor_isStreamedInForPlayer",
        "IActor_getColour",
        "ITextLabelsComponent_create",
        "ITextLabelsComponent_create_player",
    ]
    assert [t.arity for t in trampolines] == [1, 0, 1, 0, 6, 7]


def test_invalid_table_synthesizes_nothing(make_table):
    table = make_table(
        ("IActor", "void", "setSkin", "int"),
        ("IActor", "void", "setSkin", "int"),
    )
    with pytest.raises(DuplicateSymbolError):
        synthesize_table(table)
