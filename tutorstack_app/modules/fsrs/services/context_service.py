# File: tutorstack_app/modules/fsrs/services/context_service.py
"""
Storage adapters for the three review contexts.

Every service in the scheduling core is written against ``ContextStore``;
the concrete subclasses only bind the state, history, parameter and card
models of one context. None of these methods commit: the calling service
owns the transaction.
"""
from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union
from tutorstack_app.core.extensions import db
from tutorstack_app.modules.content.models import GenericCard, VocabularyCard
from tutorstack_app.utils.time_utils import ensure_utc, utcnow
from ..engine.core import FSRSEngine
from ..exceptions import UnknownContextError
from ..models import (
    GenericCardState, GenericFsrsParams, GenericReviewHistory,
    ListeningCardState, ListeningFsrsParams, ListeningReviewHistory,
    VocabularyCardState, VocabularyFsrsParams, VocabularyReviewHistory,
)
from ..schemas import CardStateDTO, CardStateEnum, ReviewContext
from .settings_service import FSRSSettingsService


class ContextStore:
    context: ReviewContext = None
    state_model = None
    history_model = None
    params_model = None
    card_model = None

    # --- Card state ---

    def load_state(self, student_id: str, card_id: str, for_update: bool = False):
        query = self.state_model.query.filter_by(student_id=student_id, card_id=card_id)
        if for_update:
            # Row lock on databases that support it; SQLite serializes writers anyway
            query = query.with_for_update()
        return query.first()

    def states_query(self, student_id: str, deck_id: Optional[str] = None):
        query = self.state_model.query.filter(self.state_model.student_id == student_id)
        if deck_id:
            query = query.join(self.card_model, self.card_model.id == self.state_model.card_id)\
                .filter(self.card_model.deck_id == deck_id)
        return query

    def states_for_student(self, student_id: str, card_ids: Optional[Iterable[str]] = None) -> List:
        query = self.states_query(student_id)
        if card_ids is not None:
            query = query.filter(self.state_model.card_id.in_(list(card_ids)))
        return query.order_by(self.state_model.card_id).all()

    def new_states_query(self, student_id: str, deck_id: Optional[str] = None):
        """NEW cards in content creation order (oldest first)."""
        return db.session.query(self.state_model)\
            .join(self.card_model, self.card_model.id == self.state_model.card_id)\
            .filter(
                self.state_model.student_id == student_id,
                self.state_model.state == CardStateEnum.NEW,
                *([self.card_model.deck_id == deck_id] if deck_id else []),
            )\
            .order_by(self.card_model.created_at.asc(), self.card_model.id.asc())

    def replace_states(self, student_id: str, states: Iterable[CardStateDTO]) -> int:
        """Delete every state row of the student and insert ``states``."""
        self.state_model.query.filter_by(student_id=student_id).delete()
        rows = [self.state_model.from_dto(dto) for dto in states]
        db.session.add_all(rows)
        return len(rows)

    def initialize_states(self, student_id: str, card_ids: Iterable[str]) -> int:
        """Create NEW states for assigned cards that have none yet."""
        card_ids = list(dict.fromkeys(card_ids))
        if not card_ids:
            return 0
        existing = {
            row.card_id for row in
            db.session.query(self.state_model.card_id)
            .filter(self.state_model.student_id == student_id,
                    self.state_model.card_id.in_(card_ids))
        }
        created_at = self.card_created_at(card_ids)
        created = 0
        for card_id in card_ids:
            if card_id in existing or card_id not in created_at:
                continue
            db.session.add(self.state_model.from_dto(
                self.fresh_state(student_id, card_id, created_at[card_id])
            ))
            created += 1
        return created

    @staticmethod
    def fresh_state(student_id: str, card_id: str, created_at: Optional[datetime]) -> CardStateDTO:
        # A NEW card is due from the moment its content exists
        return CardStateDTO.new(student_id, card_id, due=ensure_utc(created_at) or utcnow())

    # --- Content lookups ---

    def card_ids_in_deck(self, deck_id: str) -> List[str]:
        rows = db.session.query(self.card_model.id)\
            .filter(self.card_model.deck_id == deck_id)\
            .order_by(self.card_model.created_at.asc(), self.card_model.id.asc())\
            .all()
        return [row.id for row in rows]

    def card_created_at(self, card_ids: Iterable[str]) -> Dict[str, datetime]:
        card_ids = list(card_ids)
        if not card_ids:
            return {}
        rows = db.session.query(self.card_model.id, self.card_model.created_at)\
            .filter(self.card_model.id.in_(card_ids)).all()
        return {row.id: ensure_utc(row.created_at) for row in rows}

    # --- History ---

    def count_learning_steps(self, student_id: str, card_id: str) -> int:
        return self.history_model.query.filter_by(
            student_id=student_id, card_id=card_id, is_learning_step=True
        ).count()

    def append_history(self, student_id: str, card_id: str, rating: int, reviewed_at: datetime,
                       is_learning_step: bool, previous: CardStateDTO, session_id: Optional[str] = None,
                       learning_steps: Optional[List[str]] = None):
        entry = self.history_model(
            student_id=student_id,
            card_id=card_id,
            session_id=session_id,
            rating=rating,
            reviewed_at=reviewed_at,
            is_learning_step=is_learning_step,
            learning_steps=list(learning_steps) if learning_steps is not None else None,
            previous_state=previous.state,
            previous_difficulty=previous.difficulty,
            previous_stability=previous.stability,
            previous_due=previous.due,
        )
        db.session.add(entry)
        return entry

    def history_for_student(self, student_id: str, fsrs_only: bool = False) -> List:
        """All history rows of a student, grouped by card, oldest first."""
        query = self.history_model.query.filter_by(student_id=student_id)
        if fsrs_only:
            query = query.filter_by(is_learning_step=False)
        return query.order_by(
            self.history_model.card_id,
            self.history_model.reviewed_at,
            self.history_model.id,
        ).all()

    def count_reviews(self, student_id: str, fsrs_only: bool = False) -> int:
        query = self.history_model.query.filter_by(student_id=student_id)
        if fsrs_only:
            query = query.filter_by(is_learning_step=False)
        return query.count()

    # --- Parameters ---

    def load_params(self, student_id: str):
        return self.params_model.query.filter_by(student_id=student_id, is_active=True)\
            .order_by(self.params_model.last_optimized.desc(), self.params_model.id.desc())\
            .first()

    def active_weights(self, student_id: str) -> Optional[List[float]]:
        params = self.load_params(student_id)
        return list(params.w) if params else None

    def save_params(self, student_id: str, weights: List[float], training_data_size: int,
                    optimized_at: Optional[datetime] = None):
        """Deactivate the current active row and insert ``weights`` as the new one."""
        self.params_model.query.filter_by(student_id=student_id, is_active=True)\
            .update({'is_active': False})
        row = self.params_model(
            student_id=student_id,
            w=list(weights),
            is_active=True,
            training_data_size=training_data_size,
            last_optimized=optimized_at or utcnow(),
        )
        db.session.add(row)
        return row

    def engine_for(self, student_id: str) -> FSRSEngine:
        """Memory model with the student's active weights, or the defaults."""
        weights = self.active_weights(student_id) or FSRSSettingsService.default_weights()
        return FSRSEngine(custom_weights=weights, desired_retention=FSRSSettingsService.desired_retention())


class VocabularyContextStore(ContextStore):
    context = ReviewContext.VOCABULARY
    state_model = VocabularyCardState
    history_model = VocabularyReviewHistory
    params_model = VocabularyFsrsParams
    card_model = VocabularyCard


class ListeningContextStore(ContextStore):
    context = ReviewContext.LISTENING
    state_model = ListeningCardState
    history_model = ListeningReviewHistory
    params_model = ListeningFsrsParams
    card_model = VocabularyCard


class GenericContextStore(ContextStore):
    context = ReviewContext.GENERIC
    state_model = GenericCardState
    history_model = GenericReviewHistory
    params_model = GenericFsrsParams
    card_model = GenericCard


_STORES = {
    ReviewContext.VOCABULARY: VocabularyContextStore(),
    ReviewContext.LISTENING: ListeningContextStore(),
    ReviewContext.GENERIC: GenericContextStore(),
}


def resolve_context(context: Union[str, ReviewContext]) -> ReviewContext:
    if isinstance(context, ReviewContext):
        return context
    try:
        return ReviewContext(str(context).upper())
    except ValueError:
        raise UnknownContextError(context)


def get_store(context: Union[str, ReviewContext]) -> ContextStore:
    return _STORES[resolve_context(context)]
