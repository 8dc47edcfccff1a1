"""SM-2 (SuperMemo 2) scheduling for flashcard reviews.

A pure implementation of the classic SM-2 recurrence. No I/O happens here:
callers pass the current memory state of a card and the outcome of a review
and get the next memory state back.

Key concepts:
- Outcome: what the learner reported (again, fail, hard, good, easy).
- Grade: the 0-4 encoding of an outcome consumed by the algorithm.
- Interval: days until the card should be reviewed again.
- Repetition count: consecutive successful recalls (grade >= 3).
- Ease factor: multiplier controlling how fast intervals grow, floored at 1.3.
"""

import math
from dataclasses import dataclass
from enum import Enum

from review_engine.errors import ErrorCode, InvalidInput

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_GRADE = 3  # grades below this are lapses

# Fixed intervals for the first two successful recalls
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
RELEARN_INTERVAL_DAYS = 1  # after a lapse
MAX_INTERVAL_DAYS = 36500  # about a century


class ReviewOutcome(Enum):
    """Learner-reported quality of a single recall attempt."""

    AGAIN = "again"  # complete failure to recall
    FAIL = "fail"    # incorrect, but recognized on seeing the answer
    HARD = "hard"    # incorrect, though the answer felt obvious afterward
    GOOD = "good"    # correct, with noticeable effort
    EASY = "easy"    # correct, with little or no hesitation

    @property
    def grade(self) -> int:
        return OUTCOME_GRADES[self]

    @classmethod
    def parse(cls, value: "str | ReviewOutcome") -> "ReviewOutcome":
        """Return the outcome for ``value`` or raise InvalidInput."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(o.value for o in cls)
            raise InvalidInput(
                f"Outcome must be one of: {allowed}.", code=ErrorCode.INVALID_OUTCOME
            ) from None


OUTCOME_GRADES: dict[ReviewOutcome, int] = {
    ReviewOutcome.AGAIN: 0,
    ReviewOutcome.FAIL: 1,
    ReviewOutcome.HARD: 2,
    ReviewOutcome.GOOD: 3,
    ReviewOutcome.EASY: 4,
}


def grade_for(outcome: ReviewOutcome | str) -> int:
    """Map an outcome to its 0-4 grade."""
    return OUTCOME_GRADES[ReviewOutcome.parse(outcome)]


def is_success(outcome: ReviewOutcome | str) -> bool:
    return grade_for(outcome) >= PASSING_GRADE


@dataclass(frozen=True)
class MemoryState:
    """Scheduling state of one card for one user."""

    interval_days: int = 0
    repetition_count: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR


DEFAULT_STATE = MemoryState()


def next_ease_factor(ease_factor: float, grade: int) -> float:
    """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3."""
    distance = 5 - grade
    return max(MIN_EASE_FACTOR, ease_factor + (0.1 - distance * (0.08 + distance * 0.02)))


def advance(state: MemoryState, outcome: ReviewOutcome | str) -> MemoryState:
    """Apply one review outcome to a memory state and return the next state.

    Args:
        state: Current memory state (``DEFAULT_STATE`` for a never-reviewed card).
        outcome: The review outcome.

    Returns:
        A new MemoryState; ``state`` is never modified.
    """
    grade = grade_for(outcome)

    if grade >= PASSING_GRADE:
        if state.repetition_count == 0:
            interval = FIRST_INTERVAL_DAYS
        elif state.repetition_count == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            # Round half up, using the ease factor held before this review
            interval = min(
                MAX_INTERVAL_DAYS,
                max(1, math.floor(state.interval_days * state.ease_factor + 0.5)),
            )
        repetition = state.repetition_count + 1
    else:
        interval = RELEARN_INTERVAL_DAYS
        repetition = 0

    return MemoryState(
        interval_days=interval,
        repetition_count=repetition,
        ease_factor=next_ease_factor(state.ease_factor, grade),
    )
