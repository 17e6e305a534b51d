"""Tests for scope and submission models."""

import pytest
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from config.errors import ErrorCode, ScopeInvariantError
from models.scope import ScopeItem, ScopePackage, ensure_exclusive_packages, index_items
from models.submission import FreeformSubmission, LineEntry, Submission


class TestScopePackage:
    """Test ScopePackage set semantics."""

    def test_duplicate_items_collapse(self):
        package = ScopePackage(id="P", name="P", item_ids=["A", "B", "A", "C", "B"])

        assert package.item_ids == ["A", "B", "C"]
        assert package.item_id_set == frozenset({"A", "B", "C"})

    def test_empty_package(self):
        assert ScopePackage(id="P", name="P").is_empty


class TestExclusivity:
    """Test the one-package-per-item invariant."""

    def test_exclusive_packages_map_owners(self):
        owners = ensure_exclusive_packages([
            ScopePackage(id="P1", name="One", item_ids=["A", "B"]),
            ScopePackage(id="P2", name="Two", item_ids=["C"]),
        ])

        assert owners == {"A": "P1", "B": "P1", "C": "P2"}

    def test_overlap_raises(self):
        with pytest.raises(ScopeInvariantError) as exc_info:
            ensure_exclusive_packages([
                ScopePackage(id="P1", name="One", item_ids=["A"]),
                ScopePackage(id="P2", name="Two", item_ids=["A"]),
            ])

        error = exc_info.value
        assert error.code == ErrorCode.SCOPE_INVARIANT_VIOLATION
        assert error.to_dict()["details"] == {"item_id": "A", "package_ids": ["P1", "P2"]}


class TestScopeItem:
    """Test division lookup."""

    def test_item_without_division_uses_default(self):
        division = ScopeItem(id="A", trade_name="Cleaning").division()

        assert (division.code, division.name) == ("01", "General Requirements")

    def test_item_division_named_by_trade(self):
        division = ScopeItem(id="A", division_code="26", trade_name="Electrical").division()

        assert (division.code, division.name) == ("26", "Electrical")

    def test_index_items_keeps_order(self):
        index = index_items([ScopeItem(id="B"), ScopeItem(id="A")])

        assert list(index) == ["B", "A"]


class TestSubmissionUnion:
    """Test the tagged Submission union."""

    def test_discriminator_selects_variant(self):
        adapter = TypeAdapter(Submission)
        parsed = adapter.validate_python({"kind": "freeform", "subcontractor_id": "s", "project_id": "p"})

        assert isinstance(parsed, FreeformSubmission)

    def test_item_requires_item_id(self):
        with pytest.raises(PydanticValidationError):
            TypeAdapter(Submission).validate_python({"kind": "item", "id": "b", "subcontractor_id": "s"})

    def test_line_entry_amount_falls_back_to_unit_price(self):
        assert LineEntry(unit_price=12.5).amount == 12.5
        assert LineEntry(total=10.0, unit_price=12.5).amount == 10.0
        assert not LineEntry(description="no price").is_usable

    def test_empty_breakdown_treated_as_missing(self):
        submission = FreeformSubmission(
            subcontractor_id="s", project_id="p", total_amount=10.0, is_lump_sum=True, amounts_by_package={},
        )

        assert submission.amounts_by_package is None
        assert submission.is_unbroken_lump_sum
