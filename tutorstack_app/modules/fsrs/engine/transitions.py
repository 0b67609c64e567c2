"""
The single state transition shared by the live recorder and the history replay.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, Optional, Sequence

from tutorstack_app.utils.time_utils import ensure_utc, whole_days_between
from ..exceptions import InvalidRatingError
from ..schemas import CardStateDTO, CardStateEnum, Rating
from .core import FSRSEngine
from .learning_steps import decide_step, in_learning_steps

logger = logging.getLogger(__name__)


def validate_rating(rating) -> int:
    # bool is an int subclass; True must not pass as "Again"
    if isinstance(rating, bool) or not isinstance(rating, int) or rating not in (1, 2, 3, 4):
        raise InvalidRatingError(rating)
    return int(rating)


@dataclass(frozen=True)
class ReviewOutcome:
    card: CardStateDTO
    is_learning_step: bool
    interval_days: Optional[float] = None


def apply_review(card: CardStateDTO, rating: int, now: datetime.datetime, steps_done: int,
                 step_ms: Sequence[int], engine: FSRSEngine) -> ReviewOutcome:
    """
    Route one rating through the learning steps or the memory model.

    ``steps_done`` is the number of learning-step history entries the card
    already has.
    """
    rating = validate_rating(rating)
    now = ensure_utc(now)

    if in_learning_steps(card, steps_done, len(step_ms)):
        decision = decide_step(card, rating, steps_done, step_ms)
        if not decision.graduate:
            # Steps never touch reps or lapses
            return ReviewOutcome(
                card=card.evolve(
                    state=decision.state,
                    due=now + decision.delay,
                    last_review=now,
                ),
                is_learning_step=True,
            )
        logger.debug("Card %s graduated from learning steps (rating=%s)", card.card_id, rating)

    memory = engine.to_memory_state(card)
    days = 0 if memory is None else whole_days_between(card.last_review, now)
    selected = engine.next_states(memory, days).for_rating(rating)
    is_lapse = rating == Rating.Again

    return ReviewOutcome(
        card=card.evolve(
            state=CardStateEnum.RELEARNING if is_lapse else CardStateEnum.REVIEW,
            stability=selected.stability,
            difficulty=selected.difficulty,
            due=now + timedelta(days=selected.interval_days),
            reps=card.reps + 1,
            lapses=card.lapses + 1 if is_lapse else card.lapses,
            last_review=now,
        ),
        is_learning_step=False,
        interval_days=selected.interval_days,
    )


def replay_history(initial: CardStateDTO, entries: Iterable, step_ms: Sequence[int],
                   engine: FSRSEngine) -> CardStateDTO:
    """
    Fold ``(rating, reviewed_at)`` or ``(rating, reviewed_at, entry_step_ms)``
    entries, oldest first, over ``initial``.

    ``entry_step_ms`` is the step schedule the review was recorded with;
    ``step_ms`` applies where an entry carries none. The learning-step
    counter is recomputed from the replayed outcomes, so a replay yields
    exactly what the incremental recorder produced.
    """
    card = initial
    steps_done = 0
    for entry in entries:
        rating, reviewed_at = entry[0], entry[1]
        entry_step_ms = entry[2] if len(entry) > 2 and entry[2] is not None else step_ms
        outcome = apply_review(card, rating, reviewed_at, steps_done, entry_step_ms, engine)
        if outcome.is_learning_step:
            steps_done += 1
        card = outcome.card
    return card
