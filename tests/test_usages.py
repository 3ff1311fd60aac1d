import pytest

from declprune.declarations import DeclarationScanner
from declprune.resolver import find_unused
from declprune.structure import NodeKind, Structure
from declprune.usages import UsageScanner, gaps, gather_nested, lexical_span

from helpers import node


SINK = "class Sink {}\n"


def sink_file(project):
    return project.add("Sink.swift", SINK, node(SINK, "class Sink {}", NodeKind.CLASS, "Sink"))


USAGES = {
    "generic_argument": (
        "class Holder {\n    let box: Box<Sink>\n}\n",
        "let box: Box<Sink>", NodeKind.VAR_INSTANCE, "box", "Box<Sink>",
    ),
    "closure_return_type": (
        "class Factory {\n    let make: () -> Sink\n}\n",
        "let make: () -> Sink", NodeKind.VAR_INSTANCE, "make", "() -> Sink",
    ),
    "tuple_element": (
        "class Pairing {\n    var pair: (Int, Sink)\n}\n",
        "var pair: (Int, Sink)", NodeKind.VAR_INSTANCE, "pair", "(Int, Sink)",
    ),
    "bare_call": (
        "class Builder {\n    func build() {\n        Sink()\n    }\n}\n",
        "Sink()", NodeKind.CALL, "Sink", None,
    ),
}


@pytest.mark.parametrize("usage", sorted(USAGES))
def test_each_usage_keeps_declaration_alive(project, usage):
    content, snippet, kind, name, typename = USAGES[usage]
    owner = content.split()[1]
    member = node(content, snippet, kind, name, typename=typename)
    user = project.add(
        "User.swift", content,
        node(content, content.rstrip("\n"), NodeKind.CLASS, owner, subs=[member]),
    )
    sink = sink_file(project)

    declared = DeclarationScanner(project.service).scan([sink, user])
    used = UsageScanner(project.service).scan([sink, user])

    assert "Sink" in used
    assert "Sink" not in find_unused(declared, used)


def test_structured_rules():
    method = Structure.from_dict({
        "key.kind": NodeKind.CLASS.value,
        "key.name": "Service",
        "key.substructure": [
            {"key.kind": NodeKind.GENERIC_TYPE_PARAM.value, "key.name": "T",
             "key.inheritedtypes": [{"key.name": "Decoder"}]},
            {"key.kind": NodeKind.METHOD_INSTANCE.value, "key.name": "load(request:)",
             "key.typename": "Response<Payload>",
             "key.substructure": [
                 {"key.kind": NodeKind.VAR_PARAMETER.value, "key.name": "request",
                  "key.typename": "Request"},
                 {"key.kind": NodeKind.VAR_LOCAL.value, "key.name": "session",
                  "key.typename": "Session?"},
                 {"key.kind": NodeKind.CALL.value, "key.name": "Client.shared.send"},
             ]},
            {"key.kind": NodeKind.METHOD_STATIC.value, "key.name": "reset()",
             "key.typename": "Void"},
            {"key.kind": NodeKind.VAR_INSTANCE.value, "key.name": "untyped"},
            {"key.kind": NodeKind.STRUCT.value, "key.name": "Inner",
             "key.inheritedtypes": [{"key.name": "Codable"}]},
        ],
    })

    results = []
    gather_nested(method, results)

    for expected in ("T", "Decoder", "Response", "Payload", "Request", "Session",
                     "Client", "Codable"):
        assert expected in results
    assert "Void" not in results
    assert "Inner" not in results


def test_top_level_extension_counts_its_name(project):
    content = "extension Widget: Renderable {\n}\n"
    path = project.add("Widget+Render.swift", content,
                       node(content, content.rstrip("\n"), NodeKind.EXTENSION, "Widget",
                            inherited=["Renderable"]))
    used = UsageScanner(project.service).scan_file(path)
    assert "Widget" in used
    assert "Renderable" in used


def test_declaration_is_not_its_own_usage(project):
    content = "final class Orphan {\n    let count = 0\n}\n"
    path = project.add("Orphan.swift", content,
                       node(content, "class Orphan {\n    let count = 0\n}", NodeKind.CLASS, "Orphan"))
    assert "Orphan" not in UsageScanner(project.service).scan_file(path)


def test_self_reference_in_body_does_not_keep_type_alive(project):
    content = "class Foo {\n    static let shared = Foo()\n    var next: Foo?\n}\n"
    shared = node(content, "static let shared = Foo()", NodeKind.VAR_STATIC, "shared")
    following = node(content, "var next: Foo?", NodeKind.VAR_INSTANCE, "next", typename="Foo?")
    path = project.add("Foo.swift", content,
                       node(content, content.rstrip("\n"), NodeKind.CLASS, "Foo",
                            subs=[shared, following]))

    declared = DeclarationScanner(project.service).scan([path])
    used = UsageScanner(project.service).scan([path])

    assert "Foo" not in used
    assert find_unused(declared, used) == {"Foo"}


def test_comments_are_not_usages(project):
    content = (
        "/// Foo holds settings\n"
        "class Foo {\n"
        "    // Legacy callers go through Shim\n"
        "}\n"
        "\n"
        "/* Replaced by\n"
        "   Modern */\n"
        "let site = \"https://example.com\"; let cache = Cache()\n"
    )
    path = project.add("Foo.swift", content,
                       node(content, "class Foo {\n    // Legacy callers go through Shim\n}",
                            NodeKind.CLASS, "Foo"))

    used = UsageScanner(project.service).scan_file(path)
    for name in ("Foo", "Legacy", "Shim", "Replaced", "Modern"):
        assert name not in used
    assert "Cache" in used


def test_sibling_declaration_still_counts(project):
    content = "class Foo {}\n\nclass Bar {\n    let foo = Foo()\n}\n"
    path = project.add("Models.swift", content,
                       node(content, "class Foo {}", NodeKind.CLASS, "Foo"),
                       node(content, "class Bar {\n    let foo = Foo()\n}", NodeKind.CLASS, "Bar"))

    declared = DeclarationScanner(project.service).scan([path])
    used = UsageScanner(project.service).scan([path])
    assert find_unused(declared, used) == {"Bar"}


def test_global_declarations_and_free_functions(project):
    content = (
        "let shared: Registry = .init()\n"
        "func makeView() -> Widget { fatalError() }\n"
    )
    path = project.add(
        "Globals.swift", content,
        node(content, "let shared: Registry = .init()", NodeKind.VAR_GLOBAL, "shared",
             typename="Registry"),
        node(content, "func makeView() -> Widget { fatalError() }", NodeKind.FUNCTION_FREE,
             "makeView()", name_text="makeView()", typename="Widget"),
    )
    used = UsageScanner(project.service).scan_file(path)
    assert "Registry" in used
    assert "Widget" in used


def test_text_between_nodes_is_scanned(project):
    content = "typealias Handler = Callback<Target>\n\nclass Host {}\n"
    path = project.add("Alias.swift", content,
                       node(content, "class Host {}", NodeKind.CLASS, "Host"))
    used = UsageScanner(project.service).scan_file(path)
    assert "Callback" in used
    assert "Target" in used
    assert "Host" not in used


def test_gaps():
    root = Structure.from_dict({"key.substructure": [
        {"key.kind": NodeKind.CLASS.value, "key.offset": 10, "key.length": 5},
        {"key.kind": NodeKind.CLASS.value, "key.offset": 20, "key.length": 5},
    ]})
    assert gaps(root, 30) == [(0, 10), (15, 20), (25, 30)]
    assert gaps(Structure.from_dict({}), 4) == [(0, 4)]


def test_lexical_span_handles_bad_bytes():
    content = b"let x: Foo = \xff\xfe Bar()"
    names = lexical_span(content, 0, len(content))
    assert "Foo" in names
    assert "Bar" in names
    assert lexical_span(content, 5, 5) == []


def test_parallel_usage_scan_matches_sequential(project):
    paths = []
    for i in range(10):
        content = f"let value{i} = Model{i}()\n"
        paths.append(project.add(f"Use{i}.swift", content))

    scanner = UsageScanner(project.service)
    assert scanner.scan(paths) == scanner.scan(paths, max_in_flight=3)
