from .progress import (
    FillInBlankProgress, FillInBlankStage, GenericProgress, GenericStage, InvalidTransitionError,
    ListeningProgress, ListeningStage, ProgressType, SessionProgress, VocabularyProgress, VocabularyStage,
    build_initial_progress, interleave, mark_answer, progress_from_dict, reveal_answer, submit_answer,
    submit_rating,
)

__all__ = [
    'FillInBlankProgress', 'FillInBlankStage', 'GenericProgress', 'GenericStage', 'InvalidTransitionError',
    'ListeningProgress', 'ListeningStage', 'ProgressType', 'SessionProgress', 'VocabularyProgress',
    'VocabularyStage', 'build_initial_progress', 'interleave', 'mark_answer', 'progress_from_dict',
    'reveal_answer', 'submit_answer', 'submit_rating',
]
