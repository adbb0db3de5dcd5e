"""Tests for the threshold evaluator."""

from datetime import date

import pytest

from spend_tracker.evaluation import EvaluationError, ThresholdEvaluator, classify
from spend_tracker.models.expense import Classification, NewExpense
from spend_tracker.services.storage import StorageError

from tests.conftest import TODAY


class TestClassify:
    """Boundary behaviour of the pure classification."""

    @pytest.mark.parametrize(
        "total,expected",
        [
            (0, Classification.NORMAL),
            (80, Classification.NORMAL),       # exactly at the threshold
            (81, Classification.APPROACHING),
            (99, Classification.APPROACHING),
            (100, Classification.APPROACHING),  # at the limit, not over it
            (101, Classification.EXCEEDED),
        ],
    )
    def test_limit_100(self, total, expected):
        assert classify(total, 100) == expected

    def test_total_equal_to_limit_is_never_exceeded(self):
        assert classify(100, 100) == Classification.APPROACHING
        assert classify(100, 100, approaching_percent=99) == Classification.APPROACHING
        assert classify(100, 100, approaching_percent=100) == Classification.NORMAL

    def test_no_limit_is_always_normal(self):
        assert classify(1_000_000, 0) == Classification.NORMAL
        assert classify(1_000_000, -5) == Classification.NORMAL

    def test_threshold_without_rounding(self):
        """80% of 7 is 5.6; 5 is below, 6 is above."""
        assert classify(5, 7) == Classification.NORMAL
        assert classify(6, 7) == Classification.APPROACHING

    def test_custom_percent(self):
        assert classify(51, 100, approaching_percent=50) == Classification.APPROACHING
        assert classify(50, 100, approaching_percent=50) == Classification.NORMAL

    def test_full_percent_never_approaches(self):
        assert classify(100, 100, approaching_percent=100) == Classification.NORMAL
        assert classify(101, 100, approaching_percent=100) == Classification.EXCEEDED


class TestThresholdEvaluator:
    """Tests for ThresholdEvaluator against a ledger."""

    @pytest.mark.asyncio
    async def test_evaluate_reads_total_and_limit(self, ledger, user):
        await ledger.create_expense(
            NewExpense(user_id=user.id, amount=85, date=TODAY)
        )

        evaluation = await ThresholdEvaluator(ledger).evaluate(user.id)

        assert evaluation.classification == Classification.APPROACHING
        assert evaluation.weekly_total == 85
        assert evaluation.weekly_limit == 100

    @pytest.mark.asyncio
    async def test_evaluate_is_idempotent(self, ledger, user):
        await ledger.create_expense(
            NewExpense(user_id=user.id, amount=120, date=TODAY)
        )
        evaluator = ThresholdEvaluator(ledger)

        first = await evaluator.evaluate(user.id)
        second = await evaluator.evaluate(user.id)

        assert first == second
        assert first.classification == Classification.EXCEEDED

    @pytest.mark.asyncio
    async def test_last_week_does_not_count(self, ledger, user):
        await ledger.create_expense(
            NewExpense(user_id=user.id, amount=500, date=date(2024, 5, 12))
        )

        evaluation = await ThresholdEvaluator(ledger).evaluate(user.id)

        assert evaluation.weekly_total == 0
        assert evaluation.classification == Classification.NORMAL

    @pytest.mark.asyncio
    async def test_unknown_user_raises(self, ledger):
        with pytest.raises(EvaluationError, match="weekly limit"):
            await ThresholdEvaluator(ledger).evaluate(999)

    @pytest.mark.asyncio
    async def test_failed_total_read_raises(self, ledger, user):
        async def broken_total(user_id):
            raise StorageError("connection reset")

        ledger.get_weekly_total = broken_total

        with pytest.raises(EvaluationError, match="Error calculating weekly expenses"):
            await ThresholdEvaluator(ledger).evaluate(user.id)

    @pytest.mark.parametrize("percent", [0, 101])
    def test_rejects_percent_out_of_range(self, ledger, percent):
        with pytest.raises(ValueError):
            ThresholdEvaluator(ledger, approaching_percent=percent)
