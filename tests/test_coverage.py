from proxy_binding_generator.coverage import CoverageStatus, compute_coverage, normalize_spelling
from proxy_binding_generator.models import MethodDeclaration
from proxy_binding_generator.parsing.table_parser import parse_table_text

TABLE = """\
using IntPair = Pair<int, int>;
PROXY(IActor, void, setSkin, int);
PROXY(IActor, float, getHealth);
PROXY(IVehicle, IntPair, getColour);
// @todo: getEventDispatcher
// @skip: ILogger (variadic)
"""


def _discovered():
    return [
        MethodDeclaration("IActor", "void", "setSkin", ("int",)),
        MethodDeclaration("IActor", "void", "setHealth", ("float",)),
        MethodDeclaration("IActor", "IEventDispatcher<ActorEventHandler>&", "getEventDispatcher"),
        MethodDeclaration("IVehicle", "Pair<int, int>", "getColour"),
        MethodDeclaration("ILogger", "void", "logLn", ("LogLevel", "const char *")),
    ]


def test_coverage_classifies_uncovered_methods():
    report = compute_coverage(parse_table_text(TABLE), _discovered())

    assert report.discovered == 5
    assert report.covered == 2
    statuses = {u.declaration.method_name: u.status for u in report.uncovered}
    assert statuses == {
        "setHealth": CoverageStatus.MISSING,
        "getEventDispatcher": CoverageStatus.PENDING,
        "logLn": CoverageStatus.EXCLUDED,
    }
    assert [d.method_name for d in report.missing] == ["setHealth"]


def test_declared_but_not_discovered_is_stale():
    report = compute_coverage(parse_table_text(TABLE), _discovered())
    assert [d.symbol for d in report.stale] == ["IActor_getHealth"]


def test_parameter_spelling_must_match():
    table = parse_table_text("PROXY(IActor, void, setSkin, int);\n")
    report = compute_coverage(table, [MethodDeclaration("IActor", "void", "setSkin", ("unsigned int",))])
    assert report.covered == 0
    assert report.uncovered[0].status is CoverageStatus.MISSING


def test_report_dict():
    report = compute_coverage(parse_table_text(TABLE), _discovered())
    d = report.to_dict()
    assert d["counts"] == {"missing": 1, "pending": 1, "excluded": 1}
    assert d["ratio"] == 0.4
    assert d["uncovered"][1]["note"] == "getEventDispatcher"


def test_empty_discovery_is_fully_covered():
    report = compute_coverage(parse_table_text(TABLE), [])
    assert report.ratio == 1.0
    assert report.stale == []


def test_clang_spellings_match_table_spellings():
    table = parse_table_text(
        "using IntPair = Pair<int, int>;\n"
        "PROXY(IActor, void, applyAnimation, AnimationData&);\n"
        "PROXY(IVehicle, bool, isStreamedInForPlayer, const IPlayer&);\n"
        "PROXY(IVehicle, void, attachTrailer, IVehicle*);\n"
        "PROXY(IVehicle, void, setColour, const IntPair&);\n"
    )
    discovered = [
        MethodDeclaration("IActor", "void", "applyAnimation", ("AnimationData &",)),
        MethodDeclaration("IVehicle", "bool", "isStreamedInForPlayer", ("const IPlayer &",)),
        MethodDeclaration("IVehicle", "void", "attachTrailer", ("IVehicle *",)),
        MethodDeclaration("IVehicle", "void", "setColour", ("const Pair<int, int> &",)),
    ]
    report = compute_coverage(table, discovered)
    assert report.covered == 4
    assert report.uncovered == []
    assert report.stale == []


def test_normalize_spelling():
    assert normalize_spelling("const  AnimationData &") == "const AnimationData&"
    assert normalize_spelling("StaticArray<IVehicle *, MAX_VEHICLE_CARRIAGES> &") == "StaticArray<IVehicle*,MAX_VEHICLE_CARRIAGES>&"
    assert normalize_spelling("unsigned int") == "unsigned int"
