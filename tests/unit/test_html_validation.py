"""Tests for markup validation against screen TypeScript."""

from __future__ import annotations

import asyncio
import shutil
import textwrap
from pathlib import Path
from typing import Any

import pytest

from acumate.core.collector import collect
from acumate.core.errors import make_parse_error
from acumate.core.ir import DiagnosticSeverity, FeatureModel
from acumate.core.screen_html import BaseScreenDocument, IncludeMetadata, IncludeParameter
from acumate.validation import html_validation
from acumate.validation.html_validation import (
    find_related_ts_files,
    validate_html_document,
    validate_markup,
)


def _run(coro: Any) -> Any:
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@pytest.fixture
def screen_ts(fixtures_dir: Path) -> Path:
    return fixtures_dir / "html" / "HtmlTest.ts"


@pytest.fixture
def class_infos(screen_ts: Path):
    return collect(None, screen_ts)


def _validate(markup: str, class_infos, screen_ts: Path):
    return validate_markup(textwrap.dedent(markup), class_infos, [screen_ts])


def _messages(diagnostics) -> list[str]:
    return [d.message for d in diagnostics]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestValidTemplate:
    def test_fixture_template_is_clean(self, fixtures_dir: Path, class_infos, screen_ts):
        markup = (fixtures_dir / "html" / "HtmlTest.html").read_text(encoding="utf-8")
        assert validate_markup(markup, class_infos, [screen_ts]) == []


class TestViewBinding:
    def test_unknown_view(self, class_infos, screen_ts):
        markup = '<template>\n  <qp-grid id="g" view.bind="missingView"></qp-grid>\n</template>'
        diagnostics = _validate(markup, class_infos, screen_ts)
        assert _messages(diagnostics) == [
            'The <qp-grid> element must be bound to a valid view; "missingView" '
            "is not a view of this screen."
        ]
        diagnostic = diagnostics[0]
        assert diagnostic.severity == DiagnosticSeverity.WARNING
        assert diagnostic.source == "htmlValidator"
        assert diagnostic.code == "htmlValidator"
        assert (diagnostic.range.start.line, diagnostic.range.start.character) == (1, 2)

    def test_non_view_member(self, class_infos, screen_ts):
        diagnostics = _validate('<qp-form view.bind="notAView"></qp-form>', class_infos, screen_ts)
        assert len(diagnostics) == 1
        assert '"notAView"' in diagnostics[0].message

    def test_view_class_without_view_base(self, class_infos, screen_ts):
        diagnostics = _validate('<div view.bind="helperView"></div>', class_infos, screen_ts)
        assert len(diagnostics) == 1
        assert diagnostics[0].origin_class == "HtmlTestMaint"

    def test_binding_names_are_case_sensitive(self, class_infos, screen_ts):
        diagnostics = _validate('<qp-grid view.bind="MainView"></qp-grid>', class_infos, screen_ts)
        assert len(diagnostics) == 1

    def test_using_element(self, class_infos, screen_ts):
        markup = """\
            <using view="gridView"><field name="customerName"></field></using>
            <using view="ghost"></using>
        """
        assert _messages(_validate(markup, class_infos, screen_ts)) == [
            'The <using> element must reference a valid view; "ghost" '
            "is not a view of this screen."
        ]


class TestFields:
    def test_missing_field_reports_exactly_once(self, class_infos, screen_ts):
        markup = """\
            <qp-fieldset id="fs" view.bind="mainView">
                <field name="customerName"></field>
                <field name="missingField"></field>
            </qp-fieldset>
        """
        diagnostics = _validate(markup, class_infos, screen_ts)
        assert _messages(diagnostics) == [
            'The field "missingField" is not defined on view "mainView".'
        ]
        assert diagnostics[0].line == 2
        assert diagnostics[0].origin_class == "HtmlTestMaint"

    def test_action_is_not_a_field(self, class_infos, screen_ts):
        markup = (
            '<qp-fieldset view.bind="mainView">'
            '<field name="RefreshCustomer"></field></qp-fieldset>'
        )
        assert len(_validate(markup, class_infos, screen_ts)) == 1

    def test_field_without_enclosing_view(self, class_infos, screen_ts):
        markup = '<div><field name="customerName"></field></div>'
        diagnostics = _validate(markup, class_infos, screen_ts)
        assert _messages(diagnostics) == [
            'The <field> element must be bound to the valid field; "customerName" '
            "has no enclosing view."
        ]

    def test_unbound_replacement_field_is_skipped(self, class_infos, screen_ts):
        markup = (
            '<qp-fieldset view.bind="mainView">'
            '<field name="x" unbound replace-content></field></qp-fieldset>'
        )
        assert _validate(markup, class_infos, screen_ts) == []

    def test_field_under_unknown_view_reports_both(self, class_infos, screen_ts):
        markup = '<qp-fieldset view.bind="ghost"><field name="customerName"></field></qp-fieldset>'
        messages = _messages(_validate(markup, class_infos, screen_ts))
        assert len(messages) == 2
        assert messages[1] == 'The field "customerName" is not defined on view "ghost".'


class TestPanelsAndActions:
    def test_unknown_panel(self, class_infos, screen_ts):
        diagnostics = _validate('<qp-panel id="ghostPanel"></qp-panel>', class_infos, screen_ts)
        assert _messages(diagnostics) == [
            'The <qp-panel> id must reference a valid view; "ghostPanel" is not declared.'
        ]

    def test_panel_view_actions_resolve_inside_panel_only(self, class_infos, screen_ts):
        markup = """\
            <qp-panel id="detailsView">
                <qp-button state.bind="Approve"></qp-button>
            </qp-panel>
            <qp-button state.bind="Approve"></qp-button>
        """
        diagnostics = _validate(markup, class_infos, screen_ts)
        assert _messages(diagnostics) == [
            'The state.bind attribute must reference a valid PXAction; "Approve" is not declared.'
        ]
        assert diagnostics[0].line == 3

    def test_action_range_covers_attribute_value(self, class_infos, screen_ts):
        markup = '<qp-button id="b" state.bind="Nope"></qp-button>'
        diagnostic = _validate(markup, class_infos, screen_ts)[0]
        assert diagnostic.range.start.character == markup.index("Nope")
        assert diagnostic.range.end.character == markup.index("Nope") + 4

    def test_screen_actions(self, class_infos, screen_ts):
        markup = '<qp-button state.bind="SaveCustomer"></qp-button>'
        assert _validate(markup, class_infos, screen_ts) == []

    def test_actions_checked_without_screen_classes(self, screen_ts):
        view_only = [info for info in collect(None, screen_ts) if not info.is_screen]
        markup = '<qp-grid view.bind="anything"></qp-grid><qp-button state.bind="x"></qp-button>'
        diagnostics = validate_markup(markup, view_only)
        assert len(diagnostics) == 1
        assert "state.bind" in diagnostics[0].message

    def test_nothing_checked_without_classes(self):
        markup = '<qp-grid view.bind="anything"></qp-grid><qp-button state.bind="x"></qp-button>'
        assert validate_markup(markup, []) == []


class TestControlState:
    @pytest.mark.parametrize(
        "binding, expected",
        [
            ("mainView.customerName", None),
            ("mainView", "must use the <view>.<field> format"),
            ("a.b.c", "must use the <view>.<field> format"),
            ("mainView. ", "must include both a view and field name"),
            ("ghost.customerName", 'references unknown view "ghost"'),
            ("mainView.ghost", 'references unknown field "ghost" on view "mainView"'),
            ("mainView.RefreshCustomer", 'unknown field "RefreshCustomer"'),
        ],
    )
    def test_control_state_binding(self, class_infos, screen_ts, binding, expected):
        markup = f'<qp-field control-state.bind="{binding}"></qp-field>'
        diagnostics = _validate(markup, class_infos, screen_ts)
        if expected is None:
            assert diagnostics == []
        else:
            assert len(diagnostics) == 1
            assert expected in diagnostics[0].message

    def test_only_checked_on_qp_field(self, class_infos, screen_ts):
        assert _validate('<div control-state.bind="nonsense"></div>', class_infos, screen_ts) == []


class TestParseFailure:
    def test_parse_error_becomes_single_diagnostic(self, class_infos, screen_ts, monkeypatch):
        def broken(text, file=None):
            raise make_parse_error("unexpected end of tag", Path("x.html"), 1, 1)

        monkeypatch.setattr(html_validation, "parse_markup", broken)
        diagnostics = validate_markup("<qp-grid", class_infos, [screen_ts])
        assert _messages(diagnostics) == ["Parsing error: unexpected end of tag"]
        assert diagnostics[0].severity == DiagnosticSeverity.ERROR
        assert diagnostics[0].line == 0


# ---------------------------------------------------------------------------
# Document pass
# ---------------------------------------------------------------------------


@pytest.fixture
def screen_dir(tmp_path: Path, screen_ts: Path) -> Path:
    target = tmp_path / "AR" / "AR303000"
    target.mkdir(parents=True)
    shutil.copy(screen_ts, target / "AR303000.ts")
    return target


BROKEN_TEMPLATE = textwrap.dedent("""\
    <template>
        <qp-fieldset id="fs" view.bind="mainView">
            <field name="missingField"></field>
        </qp-fieldset>
        <qp-button state.bind="Nope"></qp-button>
    </template>
""")


class TestValidateHtmlDocument:
    def test_reports_against_sibling_typescript(self, screen_dir: Path, make_context):
        html = screen_dir / "AR303000.html"
        html.write_text(BROKEN_TEMPLATE, encoding="utf-8")
        diagnostics = _run(validate_html_document(html, make_context()))
        assert [d.line for d in diagnostics] == [2, 4]

    def test_in_memory_text(self, screen_dir: Path, make_context):
        html = screen_dir / "AR303000.html"
        diagnostics = _run(validate_html_document(html, make_context(), text=BROKEN_TEMPLATE))
        assert len(diagnostics) == 2

    def test_next_line_suppression(self, screen_dir: Path, make_context):
        text = BROKEN_TEMPLATE.replace(
            "        <field",
            "        <!-- acumate-disable-next-line htmlValidator -->\n        <field",
        )
        html = screen_dir / "AR303000.html"
        diagnostics = _run(validate_html_document(html, make_context(), text=text))
        assert _messages(diagnostics) == [
            'The state.bind attribute must reference a valid PXAction; "Nope" is not declared.'
        ]

    def test_file_suppression(self, screen_dir: Path, make_context):
        text = "<!-- acumate-disable-file all -->\n" + BROKEN_TEMPLATE
        html = screen_dir / "AR303000.html"
        assert _run(validate_html_document(html, make_context(), text=text)) == []

    def test_feature_disabled_screen_is_skipped(self, screen_dir: Path, make_context):
        context = make_context(features=[FeatureModel(feature_name="Inventory", enabled=False)])
        html = screen_dir / "AR303000.html"
        diagnostics = _run(validate_html_document(html, context, text=BROKEN_TEMPLATE))
        # The state.bind finding has no origin screen and survives gating
        assert [d.line for d in diagnostics] == [4]

    def test_feature_enabled_screen_is_validated(self, screen_dir: Path, make_context):
        context = make_context(features=[FeatureModel(feature_name="Inventory", enabled=True)])
        html = screen_dir / "AR303000.html"
        assert len(_run(validate_html_document(html, context, text=BROKEN_TEMPLATE))) == 2

    def test_extension_template(self, screens_dir: Path, make_context):
        html = screens_dir / "SO" / "SO301000" / "extensions" / "SO301000_AddBlanketOrderLine.html"
        diagnostics = _run(validate_html_document(html, make_context()))
        assert _messages(diagnostics) == [
            'The field "OrderNbr" is not defined on view "BlanketSplits".'
        ]

    def test_extension_feature_gate(self, screens_dir: Path, make_context):
        html = screens_dir / "SO" / "SO301000" / "extensions" / "SO301000_AddBlanketOrderLine.html"
        features = [
            FeatureModel(
                feature_name="PX.Objects.CS.FeaturesSet+DistributionModule", enabled=False
            )
        ]
        assert _run(validate_html_document(html, make_context(features=features))) == []

    def test_without_typescript_nothing_is_reported(self, tmp_path: Path, make_context):
        html = tmp_path / "Lonely.html"
        html.write_text(BROKEN_TEMPLATE, encoding="utf-8")
        assert _run(validate_html_document(html, make_context())) == []


class TestFindRelatedTsFiles:
    def test_sibling_wins(self, tmp_path: Path):
        (tmp_path / "Screen.ts").write_text("", encoding="utf-8")
        (tmp_path / "Other.ts").write_text("", encoding="utf-8")
        assert find_related_ts_files(tmp_path / "Screen.html") == [tmp_path / "Screen.ts"]

    def test_directory_fallback(self, tmp_path: Path):
        for name in ("b.ts", "a.ts", "types.d.ts", "notes.md"):
            (tmp_path / name).write_text("", encoding="utf-8")
        assert find_related_ts_files(tmp_path / "Screen.html") == [
            tmp_path / "a.ts",
            tmp_path / "b.ts",
        ]

    def test_missing_directory(self, tmp_path: Path):
        assert find_related_ts_files(tmp_path / "missing" / "Screen.html") == []


# ---------------------------------------------------------------------------
# Extension selectors, includes and layout templates
# ---------------------------------------------------------------------------


@pytest.fixture
def so_dir(screens_dir: Path) -> Path:
    return screens_dir / "SO" / "SO301000"


@pytest.fixture
def extension_ts(so_dir: Path) -> Path:
    return so_dir / "extensions" / "SO301000_AddBlanketOrderLine.ts"


@pytest.fixture
def base_screen(so_dir: Path) -> BaseScreenDocument:
    path = so_dir / "SO301000.html"
    return BaseScreenDocument.parse(path, path.read_text(encoding="utf-8"))


def _validate_extension(markup: str, extension_ts: Path, base_screen=None):
    return validate_markup(
        textwrap.dedent(markup),
        collect(None, extension_ts),
        [extension_ts],
        base_screen=base_screen,
    )


class TestExtensionSelectors:
    def test_field_takes_view_of_selector_target(self, extension_ts, base_screen):
        markup = (
            "<template><field name=\"CustomerID\" "
            "after=\"#fsColumnA-Order [name='OrderNbr']\"></field></template>"
        )
        assert _validate_extension(markup, extension_ts, base_screen) == []

    def test_append_uses_binding_of_target(self, extension_ts, base_screen):
        markup = '<field name="OrderType" append="#fsColumnA-Order"></field>'
        assert _validate_extension(markup, extension_ts, base_screen) == []

    def test_unknown_field_on_selector_view(self, extension_ts, base_screen):
        markup = "<field name=\"OrderDesc\" before=\"[name='OrderNbr']\"></field>"
        diagnostics = _validate_extension(markup, extension_ts, base_screen)
        assert _messages(diagnostics) == [
            'The field "OrderDesc" is not defined on view "Document".'
        ]

    def test_selector_without_match(self, extension_ts, base_screen):
        markup = '<field name="CustomerID" after="#fsColumnB"></field>'
        diagnostics = _validate_extension(markup, extension_ts, base_screen)
        assert _messages(diagnostics) == [
            'The after selector "#fsColumnB" does not match any elements in SO301000.html.',
            'The <field> element must be bound to the valid field; "CustomerID" '
            "has no enclosing view.",
        ]
        assert diagnostics[0].range.start.character == markup.index("#fsColumnB")

    def test_invalid_selector(self, extension_ts, base_screen):
        markup = (
            '<qp-fieldset view.bind="BlanketSplits">'
            "<field name=\"BlanketLineField\" move=\"[name='OrderNbr'\"></field></qp-fieldset>"
        )
        diagnostics = _validate_extension(markup, extension_ts, base_screen)
        assert len(diagnostics) == 1
        assert diagnostics[0].message.startswith(
            "The move selector \"[name='OrderNbr'\" is not a valid CSS selector ("
        )

    def test_selectors_ignored_without_base_screen(self, extension_ts):
        markup = "<field name=\"CustomerID\" after=\"[name='OrderNbr']\"></field>"
        assert _messages(_validate_extension(markup, extension_ts)) == [
            'The <field> element must be bound to the valid field; "CustomerID" '
            "has no enclosing view."
        ]


ADDRESS_INCLUDE = IncludeMetadata(
    path=Path("address.html"),
    parameters=[
        IncludeParameter(name="view-name", required=True),
        IncludeParameter(name="caption", default="Address"),
    ],
)


def _includes(url: str):
    return ADDRESS_INCLUDE if url == "includes/address.html" else None


class TestIncludesAndTemplates:
    def test_missing_and_unknown_parameters(self, class_infos, screen_ts):
        markup = (
            '<qp-include url="includes/address.html" id="inc" caption="Bill" '
            'data-row="1" config.bind="{}" extra="1"></qp-include>'
        )
        diagnostics = validate_markup(markup, class_infos, [screen_ts], includes=_includes)
        assert _messages(diagnostics) == [
            'The qp-include is missing required parameter "view-name".',
            'The qp-include attribute "extra" is not defined by the include template.',
        ]

    def test_complete_include(self, class_infos, screen_ts):
        markup = '<qp-include url="includes/address.html" view-name="Address"></qp-include>'
        assert validate_markup(markup, class_infos, [screen_ts], includes=_includes) == []

    def test_unresolved_include_is_skipped(self, class_infos, screen_ts):
        markup = '<qp-include url="includes/other.html" anything="1"></qp-include>'
        assert validate_markup(markup, class_infos, [screen_ts], includes=_includes) == []

    def test_template_names(self, class_infos, screen_ts):
        markup = (
            '<qp-template name="7-10-7"></qp-template>'
            '<qp-template name="17-17-14"></qp-template>'
        )
        diagnostics = validate_markup(
            markup, class_infos, [screen_ts], screen_templates={"17-17-14"}
        )
        assert _messages(diagnostics) == [
            'The qp-template name "7-10-7" is not one of the predefined screen templates.'
        ]

    def test_template_names_unchecked_without_list(self, class_infos, screen_ts):
        markup = '<qp-template name="7-10-7"></qp-template>'
        assert validate_markup(markup, class_infos, [screen_ts]) == []


class TestCompanionFiles:
    def test_extension_selector_against_base_screen(
        self, tmp_path: Path, screens_dir: Path, make_context
    ):
        shutil.copytree(screens_dir / "SO", tmp_path / "SO")
        html = tmp_path / "SO" / "SO301000" / "extensions" / "SO301000_AddBlanketOrderLine.html"
        html.write_text(
            "<template>\n"
            "\t<field name=\"CustomerID\" after=\"#fsColumnA-Order [name='OrderNbr']\"></field>\n"
            '\t<field name="OrderNbr" after="#fsMissing"></field>\n'
            "</template>\n",
            encoding="utf-8",
        )
        diagnostics = _run(validate_html_document(html, make_context()))
        assert _messages(diagnostics) == [
            'The after selector "#fsMissing" does not match any elements in SO301000.html.',
            'The <field> element must be bound to the valid field; "OrderNbr" '
            "has no enclosing view.",
        ]
        assert [d.line for d in diagnostics] == [2, 2]

    def test_include_and_template_lookup(self, screen_dir: Path, tmp_path: Path, make_context):
        template_js = (
            tmp_path / "node_modules" / "client-controls" / "controls" / "container"
            / "template" / "qp-template.js"
        )
        template_js.parent.mkdir(parents=True)
        template_js.write_text('ScreenTemplates.set("17-17-14", layout);\n', encoding="utf-8")
        include = tmp_path / "includes" / "address.html"
        include.parent.mkdir()
        include.write_text(
            "<qp-include-parameters view-name.required></qp-include-parameters>",
            encoding="utf-8",
        )

        html = screen_dir / "AR303000.html"
        html.write_text(
            "<template>\n"
            '\t<qp-template name="7-10-7"></qp-template>\n'
            '\t<qp-include url="includes/address.html"></qp-include>\n'
            "</template>\n",
            encoding="utf-8",
        )
        diagnostics = _run(validate_html_document(html, make_context()))
        assert _messages(diagnostics) == [
            'The qp-template name "7-10-7" is not one of the predefined screen templates.',
            'The qp-include is missing required parameter "view-name".',
        ]
