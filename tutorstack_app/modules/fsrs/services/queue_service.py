# File: tutorstack_app/modules/fsrs/services/queue_service.py
from __future__ import annotations
import datetime
import logging
import random
from typing import Dict, List, Optional, Tuple, Union
from tutorstack_app.utils.time_utils import elapsed_days, end_of_day, ensure_utc, utcnow
from ..engine.core import retrievability
from ..schemas import (
    Candidate, CandidateConfig, CandidateSelection, CandidateWarnings, CardStateEnum,
    ListeningReviewQueue, ReviewContext, ReviewQueue, ReviewQueueConfig,
)
from .context_service import ContextStore, get_store

logger = logging.getLogger(__name__)


class QueueAssembler:
    """Builds the working set of cards for a session. Reads only."""

    @classmethod
    def get_initial_review_queue(
        cls,
        student_id: str,
        config: Optional[ReviewQueueConfig] = None,
        context: Union[str, ReviewContext] = ReviewContext.VOCABULARY,
        now: Optional[datetime.datetime] = None,
    ) -> ReviewQueue:
        config = config or ReviewQueueConfig()
        store = get_store(context)
        now = ensure_utc(now) or utcnow()

        due_items = cls._due_states(store, student_id, config, now)
        new_rows = store.new_states_query(student_id, config.deck_id).limit(config.new_cards).all()
        queue = ReviewQueue(
            due_items=due_items,
            new_items=[row.to_dto() for row in new_rows],
        )
        logger.debug("Queue for %s (%s): %d due, %d new", student_id, store.context.value,
                     len(queue.due_items), len(queue.new_items))
        return queue

    @staticmethod
    def _due_states(store: ContextStore, student_id: str, config: ReviewQueueConfig, now: datetime.datetime):
        model = store.state_model
        reviewed = store.states_query(student_id, config.deck_id).filter(model.state != CardStateEnum.NEW)

        due_rows = reviewed.filter(model.due <= now)\
            .order_by(model.due.asc(), model.card_id.asc())\
            .limit(config.max_due).all()

        # Backfill with cards that come due later today
        missing = config.min_due - len(due_rows)
        if missing > 0:
            selected = [row.card_id for row in due_rows]
            backfill = reviewed.filter(model.due > now, model.due <= end_of_day(now))
            if selected:
                backfill = backfill.filter(model.card_id.notin_(selected))
            due_rows += backfill.order_by(model.due.asc(), model.card_id.asc()).limit(missing).all()

        return [row.to_dto() for row in due_rows]

    # --- Cross-context candidates ---

    @staticmethod
    def _retrievability_by_card(store: ContextStore, student_id: str, now: datetime.datetime,
                                deck_id: Optional[str] = None,
                                card_ids: Optional[List[str]] = None) -> Dict[str, float]:
        model = store.state_model
        query = store.states_query(student_id, deck_id).filter(
            model.state != CardStateEnum.NEW,
            model.stability > 0,
            model.last_review.isnot(None),
        )
        if card_ids is not None:
            query = query.filter(model.card_id.in_(card_ids))
        return {
            row.card_id: retrievability(row.stability, elapsed_days(row.last_review, now))
            for row in query.all()
        }

    @classmethod
    def _eligible_vocabulary(cls, student_id: str, deck_id: Optional[str], threshold: float,
                             now: datetime.datetime) -> List[Tuple[str, float]]:
        """Cards whose vocabulary recall meets ``threshold``, most confident first."""
        vocab = cls._retrievability_by_card(get_store(ReviewContext.VOCABULARY), student_id, now, deck_id)
        eligible = [(card_id, r) for card_id, r in vocab.items() if r >= threshold]
        eligible.sort(key=lambda item: (-item[1], item[0]))
        return eligible

    @classmethod
    def _listening_candidates(cls, student_id: str, deck_id: Optional[str], config: CandidateConfig,
                              now: datetime.datetime) -> List[Candidate]:
        eligible = cls._eligible_vocabulary(student_id, deck_id, config.vocabulary_confidence_threshold, now)
        listening = cls._retrievability_by_card(
            get_store(ReviewContext.LISTENING), student_id, now,
            card_ids=[card_id for card_id, _ in eligible],
        )
        candidates = []
        for card_id, vocab_r in eligible:
            listen_r = listening.get(card_id)
            candidates.append(Candidate(
                card_id=card_id,
                vocabulary_retrievability=vocab_r,
                listening_retrievability=listen_r,
                listening_ready=listen_r is not None and listen_r > config.listening_candidate_threshold,
            ))
        return candidates

    @classmethod
    def get_listening_candidates_from_vocabulary(
        cls,
        student_id: str,
        deck_id: Optional[str] = None,
        config: Optional[CandidateConfig] = None,
        now: Optional[datetime.datetime] = None,
    ) -> CandidateSelection:
        """
        Listening candidates derived from vocabulary mastery.

        A card passing the vocabulary threshold is always eligible; when its
        listening schedule is not yet ready it still counts, but is reported in
        ``warnings.suboptimal_candidates``. Never fails on low quality.
        """
        config = config or CandidateConfig()
        now = ensure_utc(now) or utcnow()

        candidates = cls._listening_candidates(student_id, deck_id, config, now)
        selected = candidates[:config.max_cards]
        if config.shuffle:
            random.shuffle(selected)

        suboptimal = sum(1 for c in selected if not c.listening_ready)
        warnings = None
        if suboptimal:
            warnings = CandidateWarnings(
                suboptimal_candidates=suboptimal,
                recommended_max_cards=sum(1 for c in candidates if c.listening_ready),
            )
            logger.info("Listening candidates for %s: %d of %d not listening-ready",
                        student_id, suboptimal, len(selected))
        return CandidateSelection(candidates=selected, warnings=warnings)

    @classmethod
    def suggest_listening_count(
        cls,
        student_id: str,
        deck_id: Optional[str] = None,
        config: Optional[CandidateConfig] = None,
        now: Optional[datetime.datetime] = None,
    ) -> int:
        """Number of cards meeting both the vocabulary and listening thresholds."""
        config = config or CandidateConfig()
        now = ensure_utc(now) or utcnow()
        return sum(1 for c in cls._listening_candidates(student_id, deck_id, config, now) if c.listening_ready)

    @classmethod
    def get_fill_in_blank_candidates(
        cls,
        student_id: str,
        deck_id: Optional[str] = None,
        config: Optional[CandidateConfig] = None,
        now: Optional[datetime.datetime] = None,
    ) -> CandidateSelection:
        config = config or CandidateConfig()
        now = ensure_utc(now) or utcnow()

        eligible = cls._eligible_vocabulary(student_id, deck_id, config.vocabulary_confidence_threshold, now)
        selected = [
            Candidate(card_id=card_id, vocabulary_retrievability=r)
            for card_id, r in eligible[:config.max_cards]
        ]
        if config.shuffle:
            random.shuffle(selected)
        return CandidateSelection(candidates=selected)

    @classmethod
    def get_listening_review_queue(
        cls,
        student_id: str,
        deck_id: Optional[str] = None,
        config: Optional[CandidateConfig] = None,
        now: Optional[datetime.datetime] = None,
    ) -> ListeningReviewQueue:
        """
        Due listening cards plus new listening cards, where new cards are
        admitted only from the vocabulary-derived candidates.
        """
        config = config or CandidateConfig()
        now = ensure_utc(now) or utcnow()
        store = get_store(ReviewContext.LISTENING)

        due_items = cls._due_states(store, student_id, ReviewQueueConfig(
            new_cards=0, max_due=config.max_due, min_due=config.min_due, deck_id=deck_id,
        ), now)

        selection = cls.get_listening_candidates_from_vocabulary(
            student_id, deck_id, CandidateConfig(
                max_cards=config.max_cards,
                vocabulary_confidence_threshold=config.vocabulary_confidence_threshold,
                listening_candidate_threshold=config.listening_candidate_threshold,
            ), now,
        )
        new_items = []
        candidate_ids = selection.card_ids
        if candidate_ids and config.new_cards > 0:
            rank = {card_id: i for i, card_id in enumerate(candidate_ids)}
            rows = store.new_states_query(student_id, deck_id)\
                .filter(store.state_model.card_id.in_(candidate_ids)).all()
            rows.sort(key=lambda row: rank[row.card_id])
            new_items = [row.to_dto() for row in rows[:config.new_cards]]

        if config.shuffle:
            random.shuffle(new_items)
        return ListeningReviewQueue(due_items=due_items, new_items=new_items, warnings=selection.warnings)
