"""
Session progress as a tagged union.

Each exercise type has its own dataclass with an explicit stage enum; the
``type`` tag selects the variant when progress is loaded back from JSON.
Transitions return a new progress object and never mutate their input.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from tutorstack_app.core.error_handlers import ValidationError
from tutorstack_app.modules.fsrs.schemas import (
    CandidateSelection, CandidateWarnings, ListeningReviewQueue, ReviewContext, ReviewQueue,
)
from tutorstack_app.modules.fsrs.services.context_service import get_store
from tutorstack_app.modules.fsrs.services.recorder_service import ReviewRecorder
from tutorstack_app.utils.time_utils import ensure_utc, utcnow


class InvalidTransitionError(ValidationError):
    """Raised when an action is not allowed in the current stage."""


class ProgressType(str, Enum):
    VOCABULARY_DECK = 'VOCABULARY_DECK'
    LISTENING_EXERCISE = 'LISTENING_EXERCISE'
    GENERIC_DECK = 'GENERIC_DECK'
    FILL_IN_BLANK_EXERCISE = 'FILL_IN_BLANK_EXERCISE'


class VocabularyStage(str, Enum):
    PRESENTING_CARD = 'PRESENTING_CARD'
    AWAITING_RATING = 'AWAITING_RATING'


class ListeningStage(str, Enum):
    PLAYING_AUDIO = 'PLAYING_AUDIO'
    AWAITING_RATING = 'AWAITING_RATING'


class GenericStage(str, Enum):
    PRESENTING_CARD = 'PRESENTING_CARD'
    AWAITING_RATING = 'AWAITING_RATING'


class FillInBlankStage(str, Enum):
    SHOWING_QUESTION = 'SHOWING_QUESTION'
    SHOWING_ANSWER = 'SHOWING_ANSWER'
    AWAITING_TEACHER_JUDGMENT = 'AWAITING_TEACHER_JUDGMENT'


@dataclass
class _ProgressBase:
    type: ClassVar[ProgressType]
    stage_enum: ClassVar[type]

    stage: Enum
    queue: List[str] = field(default_factory=list)
    initial_card_ids: List[str] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)

    @property
    def current_card_id(self) -> Optional[str]:
        return self.queue[0] if self.queue else None

    @property
    def is_complete(self) -> bool:
        return not self.queue

    def _payload(self) -> Dict[str, Any]:
        return {
            'queue': list(self.queue),
            'initialCardIds': list(self.initial_card_ids),
            'config': dict(self.config),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'stage': self.stage.value,
            'payload': self._payload(),
        }

    @classmethod
    def _from_payload(cls, stage, payload: Dict[str, Any]):
        return cls(
            stage=cls.stage_enum(stage),
            queue=list(payload.get('queue') or []),
            initial_card_ids=list(payload.get('initialCardIds') or []),
            config=dict(payload.get('config') or {}),
        )


@dataclass
class _RatedProgress(_ProgressBase):
    """Variants whose cards are rated 1-4 and scheduled by the memory model."""
    context: ClassVar[ReviewContext]
    presenting_stage: ClassVar[Enum]
    awaiting_stage: ClassVar[Enum]


@dataclass
class VocabularyProgress(_RatedProgress):
    type: ClassVar[ProgressType] = ProgressType.VOCABULARY_DECK
    stage_enum: ClassVar[type] = VocabularyStage
    context: ClassVar[ReviewContext] = ReviewContext.VOCABULARY
    presenting_stage: ClassVar[Enum] = VocabularyStage.PRESENTING_CARD
    awaiting_stage: ClassVar[Enum] = VocabularyStage.AWAITING_RATING

    stage: VocabularyStage = VocabularyStage.PRESENTING_CARD


@dataclass
class GenericProgress(_RatedProgress):
    type: ClassVar[ProgressType] = ProgressType.GENERIC_DECK
    stage_enum: ClassVar[type] = GenericStage
    context: ClassVar[ReviewContext] = ReviewContext.GENERIC
    presenting_stage: ClassVar[Enum] = GenericStage.PRESENTING_CARD
    awaiting_stage: ClassVar[Enum] = GenericStage.AWAITING_RATING

    stage: GenericStage = GenericStage.PRESENTING_CARD


@dataclass
class ListeningProgress(_RatedProgress):
    type: ClassVar[ProgressType] = ProgressType.LISTENING_EXERCISE
    stage_enum: ClassVar[type] = ListeningStage
    context: ClassVar[ReviewContext] = ReviewContext.LISTENING
    presenting_stage: ClassVar[Enum] = ListeningStage.PLAYING_AUDIO
    awaiting_stage: ClassVar[Enum] = ListeningStage.AWAITING_RATING

    stage: ListeningStage = ListeningStage.PLAYING_AUDIO
    warnings: Optional[CandidateWarnings] = None

    def _payload(self) -> Dict[str, Any]:
        payload = super()._payload()
        if self.warnings is not None:
            payload['sessionWarnings'] = self.warnings.to_dict()
        return payload

    @classmethod
    def _from_payload(cls, stage, payload: Dict[str, Any]):
        progress = super()._from_payload(stage, payload)
        progress.warnings = _warnings_from_dict(payload.get('sessionWarnings'))
        return progress


@dataclass
class FillInBlankProgress(_ProgressBase):
    type: ClassVar[ProgressType] = ProgressType.FILL_IN_BLANK_EXERCISE
    stage_enum: ClassVar[type] = FillInBlankStage

    stage: FillInBlankStage = FillInBlankStage.SHOWING_QUESTION
    student_answer: Optional[str] = None
    warnings: Optional[CandidateWarnings] = None

    def _payload(self) -> Dict[str, Any]:
        payload = super()._payload()
        payload['studentAnswer'] = self.student_answer
        if self.warnings is not None:
            payload['sessionWarnings'] = self.warnings.to_dict()
        return payload

    @classmethod
    def _from_payload(cls, stage, payload: Dict[str, Any]):
        progress = super()._from_payload(stage, payload)
        progress.student_answer = payload.get('studentAnswer')
        progress.warnings = _warnings_from_dict(payload.get('sessionWarnings'))
        return progress


SessionProgress = Union[VocabularyProgress, ListeningProgress, GenericProgress, FillInBlankProgress]

_VARIANTS = {
    cls.type: cls
    for cls in (VocabularyProgress, ListeningProgress, GenericProgress, FillInBlankProgress)
}


def _warnings_from_dict(data: Optional[Dict[str, Any]]) -> Optional[CandidateWarnings]:
    if not data:
        return None
    return CandidateWarnings(
        suboptimal_candidates=int(data['suboptimalCandidates']),
        recommended_max_cards=int(data['recommendedMaxCards']),
    )


def progress_from_dict(data: Dict[str, Any]) -> SessionProgress:
    try:
        variant = _VARIANTS[ProgressType(data['type'])]
        return variant._from_payload(data['stage'], data.get('payload') or {})
    except (KeyError, ValueError) as e:
        raise ValidationError(f"Malformed session progress: {e}")


def interleave(due: Sequence[str], new: Sequence[str]) -> List[str]:
    """
    Spread ``new`` evenly among ``due``, keeping the order of each list.
    4 due + 1 new -> d d n d d.
    """
    due, new = list(due), list(new)
    if not new or not due:
        return due + new
    keyed = [((i + 1) / (len(due) + 1), 0, card_id) for i, card_id in enumerate(due)]
    keyed += [((j + 1) / (len(new) + 1), 1, card_id) for j, card_id in enumerate(new)]
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [card_id for _, _, card_id in keyed]


def build_initial_progress(progress_type: Union[str, ProgressType],
                           queue: Union[ReviewQueue, CandidateSelection],
                           config: Optional[Dict[str, Any]] = None) -> SessionProgress:
    """Create the first progress state of a session from an assembled queue."""
    variant = _VARIANTS[ProgressType(progress_type)]
    if isinstance(queue, CandidateSelection):
        card_ids = queue.card_ids
    else:
        card_ids = interleave(
            [item.card_id for item in queue.due_items],
            [item.card_id for item in queue.new_items],
        )

    progress = variant(
        stage=list(variant.stage_enum)[0],
        queue=list(card_ids),
        initial_card_ids=list(card_ids),
        config=dict(config or {}),
    )
    if hasattr(progress, 'warnings'):
        progress.warnings = getattr(queue, 'warnings', None)
    return progress


def reveal_answer(progress: SessionProgress) -> SessionProgress:
    if isinstance(progress, FillInBlankProgress):
        if progress.stage != FillInBlankStage.SHOWING_ANSWER:
            raise InvalidTransitionError('Cannot reveal answer in current stage.')
        return replace(progress, stage=FillInBlankStage.AWAITING_TEACHER_JUDGMENT)

    if progress.stage != progress.presenting_stage:
        raise InvalidTransitionError('Invalid stage for revealing answer.')
    if progress.is_complete:
        raise InvalidTransitionError('Cannot reveal an answer for an empty queue.')
    return replace(progress, stage=progress.awaiting_stage)


def submit_rating(progress: SessionProgress, student_id: str, rating: int,
                  session_id: Optional[str] = None,
                  now: Optional[datetime.datetime] = None) -> Tuple[SessionProgress, Dict[str, Any]]:
    """
    Record the rating for the current card and rebuild the queue from the
    session's cards that are due now.
    """
    if not isinstance(progress, _RatedProgress):
        raise InvalidTransitionError(f'{progress.type.value} sessions are not rated.')
    if progress.stage != progress.awaiting_stage:
        raise InvalidTransitionError('Cannot submit rating now.')
    if progress.is_complete:
        raise InvalidTransitionError('Cannot submit rating for an empty queue.')

    now = ensure_utc(now) or utcnow()
    state = ReviewRecorder.record_review(
        student_id,
        progress.current_card_id,
        rating,
        progress.context,
        session_id=session_id,
        learning_steps=progress.config.get('learningSteps'),
        now=now,
    )

    store = get_store(progress.context)
    rows = store.states_for_student(student_id, progress.initial_card_ids)
    due = sorted(
        (row.to_dto() for row in rows),
        key=lambda card: (card.due, card.card_id),
    )
    queue = [card.card_id for card in due if card.due <= now]

    new_progress = replace(progress, stage=progress.presenting_stage, queue=queue)
    return new_progress, {'isCorrect': True, 'feedback': 'Review recorded.', 'state': state.to_dict()}


def submit_answer(progress: FillInBlankProgress, answer: str) -> FillInBlankProgress:
    if not isinstance(progress, FillInBlankProgress) or progress.stage != FillInBlankStage.SHOWING_QUESTION:
        raise InvalidTransitionError('Cannot submit student answer in current stage.')
    return replace(progress, stage=FillInBlankStage.SHOWING_ANSWER, student_answer=answer)


def mark_answer(progress: FillInBlankProgress, correct: bool) -> FillInBlankProgress:
    """Correct cards leave the queue; incorrect ones go to the back for a retry."""
    if not isinstance(progress, FillInBlankProgress) or progress.stage != FillInBlankStage.AWAITING_TEACHER_JUDGMENT:
        raise InvalidTransitionError('Cannot mark answer in current stage.')
    if progress.is_complete:
        raise InvalidTransitionError('Cannot mark an answer for an empty queue.')
    current, rest = progress.queue[0], progress.queue[1:]
    queue = rest if correct else rest + [current]
    return replace(progress, stage=FillInBlankStage.SHOWING_QUESTION, queue=queue, student_answer=None)
