"""Tests for the TypeScript declaration parser."""

import textwrap
from pathlib import Path

import pytest

from acumate.core.errors import ParseError
from acumate.core.ts_parser import is_relative_specifier, parse_source

FILE = Path("SO301000.ts")

SCREEN_SOURCE = textwrap.dedent("""\
    import { PXScreen, PXView, PXFieldState, createSingle } from "client-controls";
    import { SOLine as Line, SOShipment } from "./views";
    import Defaults from "../defaults";
    import * as ext from "./extensions";
    import "./styles";

    @graphInfo({graphType: "PX.Objects.SO.SOOrderEntry", primaryView: "Document"})
    export class SO301000 extends PXScreen {
        Document = createSingle(SOOrder);
        Transactions!: PXViewCollection<Line>;
        @linkCommand("ViewShipment")
        ShipmentNbr!: PXFieldState;
        private counter = 0;

        save() {
            return { Document: this.Document };
        }

        get total(): number {
            return 1;
        }
    }

    export class SOOrder extends PXView {
        OrderNbr!: PXFieldState
        OrderType: PXFieldState<PXFieldOptions.CommitChanges>
        handler = () => { this.OrderNbr; }
    }
""")


@pytest.fixture
def screen_module():
    return parse_source(SCREEN_SOURCE, FILE)


class TestImports:
    def test_named_and_aliased_bindings(self, screen_module):
        views = screen_module.imports[1]
        assert views.specifier == "./views"
        assert [(b.local, b.imported) for b in views.bindings] == [
            ("Line", "SOLine"),
            ("SOShipment", "SOShipment"),
        ]

    def test_default_and_namespace_bindings(self, screen_module):
        default, namespace = screen_module.imports[2], screen_module.imports[3]
        assert [(b.local, b.imported) for b in default.bindings] == [("Defaults", "default")]
        assert [(b.local, b.imported) for b in namespace.bindings] == [("ext", "*")]

    def test_side_effect_import(self, screen_module):
        side_effect = screen_module.imports[4]
        assert side_effect.specifier == "./styles"
        assert side_effect.bindings == []

    def test_relative_specifiers_skip_packages(self, screen_module):
        assert screen_module.relative_specifiers == [
            "./views",
            "../defaults",
            "./extensions",
            "./styles",
        ]

    def test_is_relative_specifier(self):
        assert is_relative_specifier("./a")
        assert is_relative_specifier("../a")
        assert not is_relative_specifier("client-controls")


class TestClasses:
    def test_classes_in_source_order(self, screen_module):
        assert [decl.name for decl in screen_module.classes] == ["SO301000", "SOOrder"]
        assert screen_module.find_class("SOOrder").heritage == ["PXView"]
        assert screen_module.find_class("Missing") is None

    def test_class_decorator_properties(self, screen_module):
        screen = screen_module.find_class("SO301000")
        assert [d.name for d in screen.decorators] == ["graphInfo"]
        graph_type = screen.decorators[0].properties["graphType"]
        assert graph_type.value == "PX.Objects.SO.SOOrderEntry"
        # Offsets exclude the quotes
        assert SCREEN_SOURCE[graph_type.start : graph_type.end] == "PX.Objects.SO.SOOrderEntry"
        assert screen.decorators[0].properties["primaryView"].value == "Document"

    def test_class_span_starts_at_decorator(self, screen_module):
        screen = screen_module.find_class("SO301000")
        assert screen.start == SCREEN_SOURCE.index("@graphInfo")
        assert SCREEN_SOURCE[screen.end - 1] == "}"
        assert screen.line == 8

    def test_default_class(self):
        module = parse_source("export default class Main extends PXScreen {}", FILE)
        assert module.default_class().name == "Main"
        assert module.classes[0].is_default

    def test_anonymous_class_expression_is_ignored(self):
        module = parse_source("const X = class { a: PXFieldState; };", FILE)
        assert module.classes == []


class TestMembers:
    def test_methods_and_accessors_are_skipped(self, screen_module):
        screen = screen_module.find_class("SO301000")
        assert [m.name for m in screen.members] == [
            "Document",
            "Transactions",
            "ShipmentNbr",
            "counter",
        ]

    def test_factory_initializer(self, screen_module):
        document = screen_module.find_class("SO301000").members[0]
        assert document.initializer.callee == "createSingle"
        assert document.initializer.arguments == ["SOOrder"]
        assert document.type_ref is None

    def test_generic_type_reference(self, screen_module):
        transactions = screen_module.find_class("SO301000").members[1]
        assert transactions.type_ref.name == "PXViewCollection"
        assert transactions.type_ref.arguments == ["Line"]

    def test_member_decorator(self, screen_module):
        shipment = screen_module.find_class("SO301000").members[2]
        assert shipment.decorators[0].name == "linkCommand"
        assert shipment.decorators[0].arguments[0].value == "ViewShipment"
        assert SCREEN_SOURCE[shipment.start : shipment.start + 11] == "ShipmentNbr"

    def test_members_without_semicolons(self, screen_module):
        order = screen_module.find_class("SOOrder")
        assert [m.name for m in order.members] == ["OrderNbr", "OrderType", "handler"]
        assert order.members[1].type_ref.name == "PXFieldState"
        assert order.members[2].initializer is None

    def test_member_line_is_one_based(self, screen_module):
        document = screen_module.find_class("SO301000").members[0]
        assert document.line == 9


class TestInterfacesAndExports:
    def test_interface_heritage_merges_declarations(self):
        source = textwrap.dedent("""\
            export interface Ext extends Base {}
            export interface Ext extends Other<T> { x: string; }
            export class Ext { A!: PXActionState; }
        """)
        module = parse_source(source, FILE)
        assert module.interface_heritage("Ext") == ["Base", "Other"]
        assert module.interface_heritage("Missing") == []

    def test_re_exports(self):
        source = 'export * from "./a";\nexport { B as C, D } from "./b";\nexport { local };\n'
        module = parse_source(source, FILE)
        assert [(r.specifier, r.names) for r in module.re_exports] == [
            ("./a", None),
            ("./b", {"C": "B", "D": "D"}),
        ]


class TestErrors:
    def test_unterminated_class_body(self):
        with pytest.raises(ParseError, match="Unterminated class body"):
            parse_source("export class A extends PXView {\n  F!: PXFieldState;\n", FILE)

    def test_error_shows_source_line(self):
        with pytest.raises(ParseError) as exc_info:
            parse_source("// header\nexport class A {\n  F!: PXFieldState;\n", FILE)
        assert exc_info.value.context.snippet == "export class A {"
        assert "   2 | export class A {" in str(exc_info.value)

    def test_lexer_errors_propagate(self):
        with pytest.raises(ParseError):
            parse_source('export class A { s = "open }', FILE)
