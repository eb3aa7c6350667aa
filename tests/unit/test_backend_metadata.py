"""Tests for backend metadata normalization."""

import pytest

from acumate.core.backend_metadata import (
    build_backend_action_map,
    build_backend_action_set,
    build_backend_field_map,
    build_backend_view_map,
    normalize_meta_name,
)
from acumate.core.ir import GraphStructure, ViewMeta


def _structure(payload: dict) -> GraphStructure:
    return GraphStructure.model_validate(payload)


class TestNormalizeMetaName:
    def test_trims_and_lowercases(self):
        assert normalize_meta_name("  OrderNbr ") == "ordernbr"

    def test_empty_and_non_string(self):
        assert normalize_meta_name("   ") is None
        assert normalize_meta_name(None) is None
        assert normalize_meta_name(42) is None

    @pytest.mark.parametrize("value", ["OrderNbr", "  Document  ", "already", "MiXeD\t", "CuryID "])
    def test_idempotent(self, value):
        once = normalize_meta_name(value)
        assert normalize_meta_name(once) == once


class TestFieldMap:
    def test_embedded_name_and_key(self):
        view = ViewMeta.model_validate(
            {"name": "Document", "fields": {"orderNbr": {"name": "OrderNbr", "displayName": "No."}}}
        )
        fields = build_backend_field_map(view)
        assert set(fields) == {"ordernbr"}
        assert fields["ordernbr"].field_name == "OrderNbr"
        assert fields["ordernbr"].field.display_name == "No."

    def test_key_differs_from_name(self):
        view = ViewMeta.model_validate({"fields": {"Alias": {"name": "RealName"}}})
        fields = build_backend_field_map(view)
        assert fields["alias"] is fields["realname"]

    def test_first_entry_wins(self):
        view = ViewMeta.model_validate(
            {
                "fields": {
                    "A": {"name": "Shared", "displayName": "first"},
                    "B": {"name": "shared", "displayName": "second"},
                }
            }
        )
        fields = build_backend_field_map(view)
        assert fields["shared"].field.display_name == "first"
        assert fields["b"] is fields["shared"]

    def test_missing_fields(self):
        assert build_backend_field_map(None) == {}
        assert build_backend_field_map(ViewMeta(name="Empty")) == {}
        view = ViewMeta.model_validate({"fields": {"Skipped": None, "": {"name": ""}}})
        assert build_backend_field_map(view) == {}


class TestViewMap:
    def test_alias_and_name_share_canonical_entry(self):
        structure = _structure(
            {
                "views": {
                    "AliasKey": {"name": "Document", "fields": {"OrderNbr": {"name": "OrderNbr"}}},
                    "document": {"name": "Document", "fields": {"Status": {"name": "Status"}}},
                }
            }
        )
        views = build_backend_view_map(structure)
        assert views["aliaskey"] is views["document"]
        canonical = views["document"]
        assert canonical.view_name == "Document"
        assert canonical.normalized_name == "document"
        assert set(canonical.fields) == {"ordernbr", "status"}

    def test_view_name_falls_back_to_key(self):
        views = build_backend_view_map(_structure({"views": {"Transactions": {"fields": {}}}}))
        assert views["transactions"].view_name == "Transactions"

    def test_empty_inputs(self):
        assert build_backend_view_map(None) == {}
        assert build_backend_view_map(_structure({"views": {"Gone": None}})) == {}

    def test_rebuilding_gives_equal_maps(self):
        structure = _structure({"views": {"Document": {"fields": {"A": {"name": "A"}}}}})
        first = build_backend_view_map(structure)
        second = build_backend_view_map(structure)
        assert set(first) == set(second)
        assert set(first["document"].fields) == set(second["document"].fields)


class TestActions:
    def test_first_declaration_wins(self):
        structure = _structure(
            {
                "actions": [
                    {"name": "Save", "displayName": "Save"},
                    {"name": " save ", "displayName": "Duplicate"},
                    None,
                    {"name": ""},
                    {"name": "AddInvBySite"},
                ]
            }
        )
        actions = build_backend_action_map(structure)
        assert list(actions) == ["save", "addinvbysite"]
        assert actions["save"].action.display_name == "Save"

    def test_action_set(self):
        structure = _structure({"actions": [{"name": "Cancel"}, {"name": "CreatePrepayment"}]})
        assert build_backend_action_set(structure) == {"cancel", "createprepayment"}
        assert build_backend_action_set(None) == set()
