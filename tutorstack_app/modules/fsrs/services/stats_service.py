# File: tutorstack_app/modules/fsrs/services/stats_service.py
from __future__ import annotations
import datetime
from typing import Any, Dict, Optional, Union
from tutorstack_app.utils.time_utils import elapsed_days, ensure_utc, utcnow, whole_days_between
from ..engine.core import retrievability
from ..exceptions import CardStateMissingError
from ..schemas import CardStateEnum, ReviewContext
from .context_service import get_store


class FSRSStatsService:
    """Read-only summaries over one context of a student."""

    @staticmethod
    def get_stats(student_id: str, context: Union[str, ReviewContext] = ReviewContext.VOCABULARY,
                  now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
        store = get_store(context)
        now = ensure_utc(now) or utcnow()

        by_state = {state: 0 for state in CardStateEnum.ALL}
        due_now = 0
        recall = []
        for row in store.states_for_student(student_id):
            card = row.to_dto()
            by_state[card.state] = by_state.get(card.state, 0) + 1
            if card.state == CardStateEnum.NEW:
                continue
            if card.due and card.due <= now:
                due_now += 1
            if card.stability > 0 and card.last_review:
                recall.append(retrievability(card.stability, elapsed_days(card.last_review, now)))

        return {
            'context': store.context.value,
            'total': sum(by_state.values()),
            'byState': by_state,
            'dueNow': due_now,
            'totalReviews': store.count_reviews(student_id),
            'averageRetrievability': sum(recall) / len(recall) if recall else None,
        }

    @staticmethod
    def preview_intervals(student_id: str, card_id: str,
                          context: Union[str, ReviewContext] = ReviewContext.VOCABULARY,
                          now: Optional[datetime.datetime] = None) -> Dict[str, float]:
        """Memory-model interval (days) each rating would give, without recording anything."""
        store = get_store(context)
        now = ensure_utc(now) or utcnow()
        row = store.load_state(student_id, card_id)
        if row is None:
            raise CardStateMissingError(student_id, card_id, store.context.value)

        card = row.to_dto()
        engine = store.engine_for(student_id)
        memory = engine.to_memory_state(card)
        days = 0 if memory is None else whole_days_between(card.last_review, now)
        states = engine.next_states(memory, days)
        return {
            'again': states.again.interval_days,
            'hard': states.hard.interval_days,
            'good': states.good.interval_days,
            'easy': states.easy.interval_days,
        }
