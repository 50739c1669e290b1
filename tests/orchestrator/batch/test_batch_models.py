"""Tests for SearchResult and MutationOutcome invariants."""

import pytest

from src.clients.models import FinancialStatus
from src.orchestrator.batch.models import (
    FailureKind,
    MutationFailure,
    MutationOutcome,
    SearchResult,
)
from tests.helpers import make_order


class TestSearchResult:
    """Tests for the search result container."""

    def test_count_and_ids_follow_page_order(self):
        orders = [make_order(3), make_order(1), make_order(2)]
        result = SearchResult(FinancialStatus.PENDING, items=orders)
        assert result.count == 3
        assert result.ids == [o.id for o in orders]
        assert result.has_more is False

    def test_items_are_stored_as_tuple(self):
        result = SearchResult(FinancialStatus.PENDING, items=[make_order(1)])
        assert isinstance(result.items, tuple)

    def test_duplicate_ids_rejected(self):
        """A result can never hold the same order twice."""
        with pytest.raises(ValueError, match="unique"):
            SearchResult(FinancialStatus.PENDING, items=[make_order(1), make_order(1)])

    def test_empty_result(self):
        result = SearchResult(FinancialStatus.PAID)
        assert result.count == 0
        assert result.ids == []


class TestMutationOutcome:
    """Tests for the bulk update outcome partition."""

    def _failure(self, kind: str = FailureKind.VALIDATION_FAILED) -> MutationFailure:
        return MutationFailure(kind=kind, message="Order is cancelled")

    def test_counts(self):
        outcome = MutationOutcome(
            to_status=FinancialStatus.PAID,
            attempted=("a", "b", "c"),
            succeeded=frozenset({"a", "c"}),
            failed={"b": self._failure()},
        )
        assert outcome.total == 3
        assert outcome.succeeded_count == 2
        assert outcome.failed_count == 1
        assert outcome.has_failures is True

    def test_all_succeeded_has_no_failures(self):
        outcome = MutationOutcome(
            to_status=FinancialStatus.PAID,
            attempted=("a",),
            succeeded=frozenset({"a"}),
        )
        assert outcome.has_failures is False
        assert dict(outcome.failed) == {}

    def test_overlap_rejected(self):
        """An id cannot be both succeeded and failed."""
        with pytest.raises(ValueError, match="both"):
            MutationOutcome(
                to_status=FinancialStatus.PAID,
                attempted=("a",),
                succeeded=frozenset({"a"}),
                failed={"a": self._failure()},
            )

    def test_missing_id_rejected(self):
        """Every attempted id must land somewhere."""
        with pytest.raises(ValueError, match="partition"):
            MutationOutcome(
                to_status=FinancialStatus.PAID,
                attempted=("a", "b"),
                succeeded=frozenset({"a"}),
            )

    def test_unattempted_id_rejected(self):
        with pytest.raises(ValueError, match="partition"):
            MutationOutcome(
                to_status=FinancialStatus.PAID,
                attempted=("a",),
                succeeded=frozenset({"a", "z"}),
            )

    def test_repeated_attempt_rejected(self):
        with pytest.raises(ValueError, match="repeat"):
            MutationOutcome(
                to_status=FinancialStatus.PAID,
                attempted=("a", "a"),
                succeeded=frozenset({"a"}),
            )

    def test_failed_mapping_is_read_only(self):
        failed = {"b": self._failure()}
        outcome = MutationOutcome(
            to_status=FinancialStatus.PAID,
            attempted=("b",),
            failed=failed,
        )
        failed["c"] = self._failure()
        assert "c" not in outcome.failed
        with pytest.raises(TypeError):
            outcome.failed["d"] = self._failure()  # type: ignore[index]

    def test_failures_by_kind_keeps_target_order(self):
        outcome = MutationOutcome(
            to_status=FinancialStatus.PAID,
            attempted=("a", "b", "c", "d"),
            succeeded=frozenset({"a"}),
            failed={
                "d": self._failure(FailureKind.RATE_LIMITED),
                "c": self._failure(FailureKind.VALIDATION_FAILED),
                "b": self._failure(FailureKind.RATE_LIMITED),
            },
        )
        assert outcome.failures_by_kind() == {
            FailureKind.RATE_LIMITED: ["b", "d"],
            FailureKind.VALIDATION_FAILED: ["c"],
        }
