"""SM-2 spaced repetition scheduling for flashcard and quiz items.

quality is the 0-5 recall grade:
    0 - complete blackout
    1 - incorrect, remembered once the answer was shown
    2 - incorrect, but the answer seemed easy to recall
    3 - correct with serious difficulty
    4 - correct after hesitation
    5 - perfect response
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel

from study_engine.errors import SchedulerValidationError
from study_engine.models import MIN_EASINESS_FACTOR, StudyItem
from study_engine.utils import get_logger, log_review

LOG = get_logger()

MASTERED_INTERVAL_DAYS = 21


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class ReviewResult(BaseModel):
    interval: int
    repetitions: int
    easiness_factor: float
    next_review: datetime


class Progress(BaseModel):
    total: int
    new: int
    learning: int
    review: int
    mastered: int
    average_interval: float
    retention_rate: float


class Recommendation(BaseModel):
    recommended_time: datetime
    item_count: int
    priority: str
    reason: str


class SpacedRepetitionScheduler:
    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self._now = now

    @staticmethod
    def validate_quality(quality) -> int:
        if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
            raise SchedulerValidationError(f'quality must be an integer in 0..5, got {quality!r}')
        return quality

    def next_schedule(self, interval: int, repetitions: int, easiness_factor: float, quality: int) -> ReviewResult:
        q = self.validate_quality(quality)
        if q >= 3:
            if repetitions == 0:
                new_interval = 1
            elif repetitions == 1:
                new_interval = 6
            else:
                new_interval = max(1, round_half_up(interval * easiness_factor))
            new_repetitions = repetitions + 1
        else:
            new_repetitions = 0
            new_interval = 1

        ef = easiness_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        ef = max(ef, MIN_EASINESS_FACTOR)
        return ReviewResult(
            interval=new_interval,
            repetitions=new_repetitions,
            easiness_factor=ef,
            next_review=self._now() + timedelta(days=new_interval),
        )

    def review(self, item: StudyItem, quality: int) -> ReviewResult:
        return self.next_schedule(item.interval, item.repetitions, item.easiness_factor, quality)

    def apply_review(self, item: StudyItem, quality: int) -> StudyItem:
        """Return a copy of item with the new schedule, last_reviewed and difficulty applied."""
        result = self.review(item, quality)
        difficulty = item.difficulty
        if quality >= 4:
            difficulty = max(0.0, difficulty - 0.2)
        elif quality < 3:
            difficulty = min(5.0, difficulty + 0.3)
        updated = item.model_copy(update={
            'interval': result.interval,
            'repetitions': result.repetitions,
            'easiness_factor': result.easiness_factor,
            'next_review': result.next_review,
            'last_reviewed': self._now(),
            'difficulty': round(difficulty, 1),
        })
        log_review(item.id, quality, result.interval, result.repetitions, result.easiness_factor)
        return updated

    def days_overdue(self, item: StudyItem) -> int:
        seconds = (self._now() - item.next_review).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def due_items(self, items: Iterable[StudyItem], include_new: bool = True) -> List[StudyItem]:
        today = self._now().date()
        return [
            i for i in items
            if i.next_review.date() <= today or (include_new and i.repetitions == 0)
        ]

    def sort_for_study(self, items: Iterable[StudyItem]) -> List[StudyItem]:
        # most overdue, then hardest, then least repeated, then oldest
        return sorted(items, key=lambda i: (-self.days_overdue(i), -i.difficulty, i.repetitions, i.created))

    @staticmethod
    def estimate_quality(was_correct: bool, response_seconds: float, difficulty: float) -> int:
        if not was_correct:
            return 1 if response_seconds <= 15 else 0
        bonus = 0
        if response_seconds < 3:
            bonus = 2
        elif response_seconds < 5:
            bonus = 1
        elif response_seconds > 15:
            bonus = -1
        penalty = -0.5 if difficulty > 3 else 0
        return min(5, max(3, round_half_up(3 + bonus + penalty)))

    def progress(self, items: Iterable[StudyItem]) -> Progress:
        items = list(items)
        total = len(items)
        intervals = sum(i.interval for i in items)
        return Progress(
            total=total,
            new=sum(1 for i in items if i.repetitions == 0),
            learning=sum(1 for i in items if 0 < i.repetitions < 3),
            review=sum(1 for i in items if i.repetitions >= 3 and i.interval < MASTERED_INTERVAL_DAYS),
            mastered=sum(1 for i in items if i.interval >= MASTERED_INTERVAL_DAYS),
            average_interval=round(intervals / total, 1) if total else 0.0,
            retention_rate=min(100.0, round(intervals / (total * 365) * 100, 1)) if total else 0.0,
        )

    def recommendation(self, items: Iterable[StudyItem]) -> Recommendation:
        items = list(items)
        due = self.due_items(items, include_new=False)
        overdue = [i for i in due if self.days_overdue(i) > 0]
        if len(overdue) > 10:
            priority, reason = 'high', f'{len(overdue)}개의 카드 복습이 밀려 있습니다.'
        elif len(overdue) > 5:
            priority, reason = 'medium', f'{len(overdue)}개의 카드를 복습할 시간입니다.'
        elif due:
            priority, reason = 'low', f'{len(due)}개의 카드가 복습 대기 중입니다.'
        else:
            priority, reason = 'low', '정기 복습'

        now = self._now()
        upcoming: Optional[StudyItem] = min((i for i in items if i.next_review > now), key=lambda i: i.next_review, default=None)
        return Recommendation(
            recommended_time=upcoming.next_review if upcoming else now,
            item_count=len(due),
            priority=priority,
            reason=reason,
        )
