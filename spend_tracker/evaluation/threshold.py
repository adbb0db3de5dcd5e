"""
Threshold Evaluator

Classifies a user's weekly spend against their weekly limit:

    limit <= 0                           -> NORMAL (no limit configured)
    total >  limit                       -> EXCEEDED
    total >  limit * percent / 100       -> APPROACHING
    otherwise                            -> NORMAL

Both comparisons are strict. A total exactly equal to the limit is never
EXCEEDED; it is APPROACHING whenever the percent is below 100. A total
exactly at the approaching threshold is NORMAL. The approaching
check is done in integers (total * 100 > limit * percent) so the boundary
never moves with floating point rounding.

The evaluator only reads. It never defaults to NORMAL when a read fails.
"""

from spend_tracker.models.expense import Classification, ThresholdEvaluation
from spend_tracker.services.storage import LedgerStorageInterface, StorageError


DEFAULT_APPROACHING_PERCENT = 80


class EvaluationError(Exception):
    """Weekly total or weekly limit could not be read."""
    pass


def classify(
    weekly_total: int,
    weekly_limit: int,
    approaching_percent: int = DEFAULT_APPROACHING_PERCENT,
) -> Classification:
    """Pure classification of a weekly total against a limit."""
    if weekly_limit <= 0:
        return Classification.NORMAL
    if weekly_total > weekly_limit:
        return Classification.EXCEEDED
    if weekly_total * 100 > weekly_limit * approaching_percent:
        return Classification.APPROACHING
    return Classification.NORMAL


class ThresholdEvaluator:
    """
    Reads the weekly total and limit for a user and classifies them.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        approaching_percent: int = DEFAULT_APPROACHING_PERCENT,
    ):
        if not 0 < approaching_percent <= 100:
            raise ValueError("approaching_percent must be between 1 and 100")
        self._ledger = ledger
        self._approaching_percent = approaching_percent

    @property
    def approaching_percent(self) -> int:
        return self._approaching_percent

    async def evaluate(self, user_id: int) -> ThresholdEvaluation:
        """
        Classify the user's current weekly spend.

        Raises:
            EvaluationError: If either read fails (including unknown user)
        """
        try:
            weekly_total = await self._ledger.get_weekly_total(user_id)
        except StorageError as e:
            raise EvaluationError(f"Error calculating weekly expenses: {e}") from e

        try:
            weekly_limit = await self._ledger.get_weekly_limit(user_id)
        except StorageError as e:
            raise EvaluationError(f"Error retrieving user weekly limit: {e}") from e

        return ThresholdEvaluation(
            user_id=user_id,
            classification=classify(
                weekly_total, weekly_limit, self._approaching_percent
            ),
            weekly_total=weekly_total,
            weekly_limit=weekly_limit,
        )
