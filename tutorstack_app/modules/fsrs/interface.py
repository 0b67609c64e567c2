# File: tutorstack_app/modules/fsrs/interface.py
from typing import Any, Dict, Iterable, List, Optional, Union
from .schemas import (
    CandidateConfig, CandidateSelection, CardStateDTO, ListeningReviewQueue,
    ReviewContext, ReviewQueue, ReviewQueueConfig,
)
from .services.assignment_service import CardAssignmentService
from .services.optimizer_service import FSRSOptimizerService
from .services.queue_service import QueueAssembler
from .services.rebuild_service import CacheRebuilder
from .services.recorder_service import ReviewRecorder
from .services.settings_service import FSRSSettingsService
from .services.stats_service import FSRSStatsService

Context = Union[str, ReviewContext]


class FSRSInterface:
    """Public API for the scheduling core, used by sessions, jobs and routes."""

    @staticmethod
    def record_review(student_id: str, card_id: str, rating: int, context: Context = ReviewContext.VOCABULARY,
                      session_id: Optional[str] = None, learning_steps: Optional[List[str]] = None) -> CardStateDTO:
        return ReviewRecorder.record_review(
            student_id, card_id, rating, context,
            session_id=session_id, learning_steps=learning_steps,
        )

    @staticmethod
    def get_initial_review_queue(student_id: str, config: Optional[ReviewQueueConfig] = None,
                                 context: Context = ReviewContext.VOCABULARY) -> ReviewQueue:
        return QueueAssembler.get_initial_review_queue(student_id, config, context)

    @staticmethod
    def get_listening_candidates_from_vocabulary(student_id: str, deck_id: Optional[str] = None,
                                                 config: Optional[CandidateConfig] = None) -> CandidateSelection:
        return QueueAssembler.get_listening_candidates_from_vocabulary(student_id, deck_id, config)

    @staticmethod
    def get_fill_in_blank_candidates(student_id: str, deck_id: Optional[str] = None,
                                     config: Optional[CandidateConfig] = None) -> CandidateSelection:
        return QueueAssembler.get_fill_in_blank_candidates(student_id, deck_id, config)

    @staticmethod
    def get_listening_review_queue(student_id: str, deck_id: Optional[str] = None,
                                   config: Optional[CandidateConfig] = None) -> ListeningReviewQueue:
        return QueueAssembler.get_listening_review_queue(student_id, deck_id, config)

    @staticmethod
    def suggest_listening_count(student_id: str, deck_id: Optional[str] = None,
                                config: Optional[CandidateConfig] = None) -> int:
        return QueueAssembler.suggest_listening_count(student_id, deck_id, config)

    @staticmethod
    def initialize_card_states(student_id: str, card_ids: Iterable[str], context: Context) -> int:
        return CardAssignmentService.initialize_card_states(student_id, card_ids, context)

    @staticmethod
    def initialize_deck(student_id: str, deck_id: str, context: Context) -> int:
        return CardAssignmentService.initialize_deck(student_id, deck_id, context)

    @staticmethod
    def optimize_parameters(student_id: str, context: Context = ReviewContext.VOCABULARY) -> Dict[str, Any]:
        return FSRSOptimizerService.optimize_parameters(student_id, context)

    @staticmethod
    def rebuild_cache(student_id: str, context: Context = ReviewContext.VOCABULARY) -> Dict[str, int]:
        return CacheRebuilder.rebuild_cache(student_id, context)

    @staticmethod
    def get_stats(student_id: str, context: Context = ReviewContext.VOCABULARY) -> Dict[str, Any]:
        return FSRSStatsService.get_stats(student_id, context)

    @staticmethod
    def preview_intervals(student_id: str, card_id: str, context: Context = ReviewContext.VOCABULARY) -> Dict[str, float]:
        return FSRSStatsService.preview_intervals(student_id, card_id, context)

    @staticmethod
    def get_config(key: str, default: Any = None) -> Any:
        """Get FSRS configuration."""
        return FSRSSettingsService.get(key, default)
