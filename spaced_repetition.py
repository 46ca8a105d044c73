"""
Spaced repetition scheduling for quiz questions.

A simplified SM-2 variant: a correct answer (quality 4) nudges the difficulty
factor up by 0.1 and stretches the interval by ``1.3 + factor``; a wrong
answer (quality 1) lowers the factor by 0.2 and resets the interval to one
day. The factor is clamped to [0.1, 2.5] before it is used.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from models import ReviewState

INITIAL_INTERVAL_DAYS = 1.0
INITIAL_DIFFICULTY_FACTOR = 0.5
MIN_DIFFICULTY_FACTOR = 0.1
MAX_DIFFICULTY_FACTOR = 2.5
INTERVAL_GROWTH_BASE = 1.3
QUALITY_CORRECT = 4
QUALITY_INCORRECT = 1
QUALITY_PIVOT = 3
QUALITY_STEP = 0.1


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def initial_review_state(now: Optional[datetime] = None) -> ReviewState:
    return ReviewState(
        next_review_at=_now(now),
        interval_days=INITIAL_INTERVAL_DAYS,
        difficulty_factor=INITIAL_DIFFICULTY_FACTOR,
    )


def next_review_state(previous: ReviewState, is_correct: bool, now: Optional[datetime] = None) -> ReviewState:
    """Pure state transition; the same inputs always give the same state."""
    quality = QUALITY_CORRECT if is_correct else QUALITY_INCORRECT
    factor = previous.difficulty_factor + (quality - QUALITY_PIVOT) * QUALITY_STEP
    factor = max(MIN_DIFFICULTY_FACTOR, min(MAX_DIFFICULTY_FACTOR, factor))

    if is_correct:
        interval = max(INITIAL_INTERVAL_DAYS, previous.interval_days * (INTERVAL_GROWTH_BASE + factor))
    else:
        interval = INITIAL_INTERVAL_DAYS

    return ReviewState(
        next_review_at=_now(now) + timedelta(days=interval),
        interval_days=interval,
        difficulty_factor=factor,
    )


class SpacedRepetitionScheduler:
    """
    Review state per quiz question index.

    Owned by the caller; not shared across quizzes. ``now`` is injectable on
    every method so schedules are reproducible in tests.
    """

    def __init__(self):
        self._states: Dict[int, ReviewState] = {}

    def __len__(self) -> int:
        return len(self._states)

    def initialize(self, question_count: int, now: Optional[datetime] = None) -> Dict[int, ReviewState]:
        """Reset the schedule: every question is due immediately."""
        start = _now(now)
        self._states = {index: initial_review_state(start) for index in range(max(0, question_count))}
        return dict(self._states)

    def update(self, index: int, is_correct: bool, now: Optional[datetime] = None) -> ReviewState:
        """Record an answer; an index never seen before starts from the initial state."""
        previous = self._states.get(index) or initial_review_state(now)
        state = next_review_state(previous, is_correct, now)
        self._states[index] = state
        return state

    def get(self, index: int) -> Optional[ReviewState]:
        return self._states.get(index)

    def snapshot(self) -> Dict[int, ReviewState]:
        return dict(self._states)

    def due_indices(self, now: Optional[datetime] = None) -> List[int]:
        """Indices whose next review is at or before ``now``, most overdue first."""
        moment = _now(now)
        due = [(state.next_review_at, index) for index, state in self._states.items() if state.next_review_at <= moment]
        return [index for _, index in sorted(due)]
