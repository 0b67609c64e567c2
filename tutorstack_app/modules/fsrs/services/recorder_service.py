# File: tutorstack_app/modules/fsrs/services/recorder_service.py
from __future__ import annotations
import datetime
import logging
from typing import List, Optional, Union
from tutorstack_app.core.extensions import db
from tutorstack_app.utils.time_utils import ensure_utc, utcnow
from ..engine.transitions import apply_review, validate_rating
from ..exceptions import CardStateMissingError
from ..schemas import CardStateDTO, ReviewContext
from ..signals import card_reviewed
from .context_service import get_store
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


class ReviewRecorder:
    """
    Transactional entry point for one (student, card, rating) event.
    Handles DB interactions, Engine calls, and Signal emission.
    """

    @classmethod
    def record_review(
        cls,
        student_id: str,
        card_id: str,
        rating: int,
        context: Union[str, ReviewContext] = ReviewContext.VOCABULARY,
        session_id: Optional[str] = None,
        learning_steps: Optional[List[str]] = None,
        now: Optional[datetime.datetime] = None,
    ) -> CardStateDTO:
        """
        Apply ``rating`` to the card and append one history entry.

        Exactly one state row is updated and one history row appended, in a
        single transaction. Raises ``CardStateMissingError`` when the card was
        never initialized for the student and ``InvalidRatingError`` for
        ratings outside 1-4. The step schedule used is stored on the history
        entry so that a rebuild replays the review the same way.
        """
        rating = validate_rating(rating)
        store = get_store(context)
        if learning_steps is None:
            learning_steps = FSRSSettingsService.learning_steps()
        step_ms = FSRSSettingsService.learning_step_ms(learning_steps)
        now = ensure_utc(now) or utcnow()

        try:
            row = store.load_state(student_id, card_id, for_update=True)
            if row is None:
                raise CardStateMissingError(student_id, card_id, store.context.value)

            previous = row.to_dto()
            steps_done = store.count_learning_steps(student_id, card_id)
            outcome = apply_review(previous, rating, now, steps_done, step_ms, store.engine_for(student_id))

            row.apply_dto(outcome.card)
            store.append_history(
                student_id, card_id, rating, now,
                is_learning_step=outcome.is_learning_step,
                previous=previous,
                session_id=session_id,
                learning_steps=learning_steps,
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.debug(
            "Recorded %s review student=%s card=%s rating=%s state=%s learning_step=%s",
            store.context.value, student_id, card_id, rating, outcome.card.state, outcome.is_learning_step,
        )
        card_reviewed.send(
            cls,
            student_id=student_id,
            card_id=card_id,
            context=store.context,
            rating=rating,
            state=outcome.card,
            is_learning_step=outcome.is_learning_step,
        )
        return outcome.card
