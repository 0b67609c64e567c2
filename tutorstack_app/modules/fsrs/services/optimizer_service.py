# File: tutorstack_app/modules/fsrs/services/optimizer_service.py
from __future__ import annotations
import logging
from collections import OrderedDict
from typing import Any, Dict, List, Union
from fsrs_rs_python import FSRS, FSRSItem, FSRSReview
from tutorstack_app.core.extensions import db
from tutorstack_app.utils.time_utils import elapsed_days, round_half_up, utcnow
from ..exceptions import OptimizationError
from ..schemas import ReviewContext
from ..signals import parameters_updated
from .context_service import get_store
from .settings_service import FSRSSettingsService

logger = logging.getLogger(__name__)


class FSRSOptimizerService:
    """Service to optimize FSRS parameters for individual students."""

    @classmethod
    def optimize_parameters(cls, student_id: str,
                            context: Union[str, ReviewContext] = ReviewContext.VOCABULARY) -> Dict[str, Any]:
        """
        Fit a new weight vector from the student's memory-model history.

        Sparse history is a soft skip, not an error: the result then carries
        only a ``message``. Returns ``{'message', 'params'}`` on success.
        """
        store = get_store(context)
        history = store.history_for_student(student_id, fsrs_only=True)
        min_reviews = FSRSSettingsService.optimizer_min_reviews()

        if len(history) < min_reviews:
            message = (f"Skipping {store.context.value.lower()} optimization for student {student_id}: "
                       f"insufficient FSRS history ({len(history)} < {min_reviews}).")
            logger.info(message)
            return {'message': message, 'skipped': True}

        train_set = cls._convert_to_fsrs_items(cls._group_by_card(history))
        try:
            weights = cls._fit(train_set, FSRSSettingsService.default_weights())
        except Exception as e:
            logger.error(f"[FsrsOptimizer] Training failed for student {student_id} ({store.context.value}): {e}")
            raise OptimizationError(student_id, store.context.value, str(e)) from e

        try:
            row = store.save_params(student_id, weights, training_data_size=len(history), optimized_at=utcnow())
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info("Optimized %s parameters for student %s from %d reviews",
                    store.context.value, student_id, len(history))
        parameters_updated.send(
            cls, student_id=student_id, context=store.context, training_data_size=len(history),
        )
        return {
            'message': f"Optimized {store.context.value.lower()} params for student {student_id}.",
            'skipped': False,
            'params': row.to_dict(),
        }

    @staticmethod
    def _fit(train_set: List[FSRSItem], initial_weights: List[float]) -> List[float]:
        fsrs = FSRS(parameters=initial_weights)
        return [float(w) for w in fsrs.compute_parameters(train_set)]

    @staticmethod
    def _group_by_card(history) -> Dict[str, List]:
        grouped = OrderedDict()
        for entry in history:
            grouped.setdefault(entry.card_id, []).append(entry)
        return grouped

    @staticmethod
    def _convert_to_fsrs_items(reviews_by_card: Dict[str, List]) -> List[FSRSItem]:
        items = []
        for card_id, reviews in reviews_by_card.items():
            # A single review carries no interval to learn from
            if len(reviews) < 2:
                continue
            fsrs_reviews = []
            prev_reviewed_at = None
            for review in reviews:
                delta_t = 0
                if prev_reviewed_at is not None:
                    delta_t = max(0, round_half_up(elapsed_days(prev_reviewed_at, review.reviewed_at)))
                fsrs_reviews.append(FSRSReview(int(review.rating), delta_t))
                prev_reviewed_at = review.reviewed_at
            # Each item predicts its last review; one item per prefix
            for k in range(2, len(fsrs_reviews) + 1):
                items.append(FSRSItem(reviews=fsrs_reviews[:k]))
        return items
