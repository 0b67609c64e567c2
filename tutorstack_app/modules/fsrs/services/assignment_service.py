# File: tutorstack_app/modules/fsrs/services/assignment_service.py
from __future__ import annotations
import logging
from typing import Iterable, Union
from tutorstack_app.core.extensions import db
from ..schemas import ReviewContext
from .context_service import get_store

logger = logging.getLogger(__name__)


class CardAssignmentService:
    """Creates the initial NEW schedule when cards are assigned to a student."""

    @staticmethod
    def initialize_card_states(student_id: str, card_ids: Iterable[str],
                               context: Union[str, ReviewContext]) -> int:
        """Idempotent: cards that already have a state are left untouched."""
        store = get_store(context)
        try:
            created = store.initialize_states(student_id, card_ids)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        logger.info("Initialized %d %s card states for student %s",
                    created, store.context.value, student_id)
        return created

    @classmethod
    def initialize_deck(cls, student_id: str, deck_id: str,
                        context: Union[str, ReviewContext]) -> int:
        store = get_store(context)
        return cls.initialize_card_states(student_id, store.card_ids_in_deck(deck_id), store.context)
