"""
Unit tests for column specs.

Tests construction, validation and kind tagging.
"""

import pytest
from shift_report.columns import ColumnKind, ColumnSpec, classify_column
from shift_report.constants import DEFAULT_COLUMNS
from shift_report.validation import ValidationError


NAMES = ["ID", "Title", "Pickup Date", "Priority"]
FIELDS = ["System.Id", "System.Title", "Custom.PickupDate", "Custom.Priority"]


class TestClassifyColumn:
    """Test classify_column."""

    def test_first_column_is_identifier(self):
        assert classify_column(0, "Created Date", True) is ColumnKind.IDENTIFIER
        assert classify_column(0, "Title", True) is ColumnKind.IDENTIFIER

    def test_date_suffix(self):
        assert classify_column(2, "Pickup Date", False) is ColumnKind.DATE

    def test_date_suffix_is_case_sensitive(self):
        assert classify_column(2, "Update", False) is ColumnKind.PLAIN
        assert classify_column(2, "Pickup date", False) is ColumnKind.PLAIN

    def test_title_linked_only_when_requested(self):
        assert classify_column(1, "Title", True) is ColumnKind.LINKED_TITLE
        assert classify_column(1, "Title", False) is ColumnKind.PLAIN

    def test_title_match_is_exact(self):
        assert classify_column(1, "Title ", True) is ColumnKind.PLAIN
        assert classify_column(1, "Job Title", True) is ColumnKind.PLAIN


class TestColumnSpec:
    """Test ColumnSpec construction."""

    def test_from_names_preserves_order(self):
        spec = ColumnSpec.from_names(NAMES, FIELDS)
        assert spec.display_names == NAMES
        assert [c.source_field for c in spec] == FIELDS
        assert len(spec) == 4

    def test_kinds_tagged_once(self):
        spec = ColumnSpec.from_names(NAMES, FIELDS, title_as_link=True)
        assert [c.kind for c in spec] == [
            ColumnKind.IDENTIFIER,
            ColumnKind.LINKED_TITLE,
            ColumnKind.DATE,
            ColumnKind.PLAIN,
        ]

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="mismatch"):
            ColumnSpec.from_names(NAMES, FIELDS[:3])

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            ColumnSpec.from_names([], [])

    def test_blank_display_name_rejected(self):
        with pytest.raises(ValidationError, match="empty display name"):
            ColumnSpec.from_names(["ID", " "], ["System.Id", "System.Title"])

    def test_invalid_source_field_rejected(self):
        with pytest.raises(ValidationError):
            ColumnSpec.from_names(["ID", "Title"], ["System.Id", "Title"])

    def test_duplicate_display_names_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate"):
            ColumnSpec.from_names(["ID", "State", "State"], ["System.Id", "System.State", "System.Reason"])

    def test_detail_fields(self):
        spec = ColumnSpec.from_names(NAMES, FIELDS)
        assert spec.detail_fields() == [
            "System.Id", "System.Title", "Custom.PickupDate", "Custom.Priority"
        ]

    def test_detail_fields_deduplicated(self):
        spec = ColumnSpec.from_names(
            ["ID", "Title", "Heading"],
            ["System.Id", "System.Title", "System.Title"]
        )
        assert spec.detail_fields() == ["System.Id", "System.Title"]

    def test_with_title_links_retags(self):
        plain = ColumnSpec.from_names(NAMES, FIELDS)
        linked = plain.with_title_links(True)
        assert linked[1].kind is ColumnKind.LINKED_TITLE
        assert plain[1].kind is ColumnKind.PLAIN
        assert linked.with_title_links(True) is linked

    def test_with_title_links_without_title_column(self):
        spec = ColumnSpec.from_names(["ID", "State"], ["System.Id", "System.State"])
        assert spec.with_title_links(True) is spec

    def test_default_columns_build(self):
        spec = ColumnSpec.from_pairs(DEFAULT_COLUMNS)
        assert spec.identifier.kind is ColumnKind.IDENTIFIER
        assert spec.display_names[0] == "ID"

    def test_default_columns_include_priority(self):
        spec = ColumnSpec.from_pairs(DEFAULT_COLUMNS)
        assert "Priority" in spec.display_names
        assert spec[spec.display_names.index("Priority")].source_field == "Microsoft.VSTS.Common.Priority"
