# File: tutorstack_app/modules/fsrs/services/rebuild_service.py
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Union
from tutorstack_app.core.extensions import db
from ..engine.transitions import replay_history
from ..schemas import CardStateDTO, ReviewContext
from ..signals import cache_rebuilt
from .context_service import get_store
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


class CacheRebuilder:
    """
    Reconstructs a student's card states from review history alone.

    Each card starts from a fresh NEW state and every history entry is fed
    through the same transition the recorder applies, so the result matches
    the incrementally maintained table as long as the parameters are
    unchanged. Each entry is replayed with the step schedule stored on it;
    ``learning_steps`` (or the configured steps) covers entries without one.
    """

    @classmethod
    def compute_states(cls, student_id: str, context: Union[str, ReviewContext],
                       learning_steps: Optional[List[str]] = None) -> List[CardStateDTO]:
        store = get_store(context)
        step_ms = FSRSSettingsService.learning_step_ms(learning_steps)
        engine = store.engine_for(student_id)

        parsed: Dict[tuple, List[int]] = {}
        history_by_card: Dict[str, list] = {}
        for entry in store.history_for_student(student_id):
            entry_step_ms = None
            if entry.learning_steps is not None:
                key = tuple(entry.learning_steps)
                if key not in parsed:
                    parsed[key] = FSRSSettingsService.learning_step_ms(list(key))
                entry_step_ms = parsed[key]
            history_by_card.setdefault(entry.card_id, []).append(
                (entry.rating, entry.reviewed_at, entry_step_ms)
            )

        assigned = {row.card_id for row in store.states_for_student(student_id)}
        card_ids = sorted(assigned | set(history_by_card))
        created_at = store.card_created_at(card_ids)

        return [
            replay_history(
                store.fresh_state(student_id, card_id, created_at.get(card_id)),
                history_by_card.get(card_id, []),
                step_ms,
                engine,
            )
            for card_id in card_ids
        ]

    @classmethod
    def rebuild_cache(cls, student_id: str, context: Union[str, ReviewContext] = ReviewContext.VOCABULARY,
                      learning_steps: Optional[List[str]] = None) -> Dict[str, int]:
        store = get_store(context)
        try:
            states = cls.compute_states(student_id, store.context, learning_steps)
            # Delete and insert commit together; no partial table is ever visible
            rebuilt = store.replace_states(student_id, states)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Rebuilt %d %s card states for student %s", rebuilt, store.context.value, student_id)
        cache_rebuilt.send(cls, student_id=student_id, context=store.context, cards_rebuilt=rebuilt)
        return {'cardsRebuilt': rebuilt}
