# File: tutorstack_app/modules/fsrs/schemas.py
from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from marshmallow import EXCLUDE, Schema, fields, post_load, validate

from .config import FSRSDefaultConfig

LEARNING_STEP_PATTERN = r'^\d+[smhd]$'


# Standard FSRS Rating (1-4)
class Rating(IntEnum):
    Again = 1
    Hard = 2
    Good = 3
    Easy = 4


class CardStateEnum:
    NEW = 'NEW'
    LEARNING = 'LEARNING'
    REVIEW = 'REVIEW'
    RELEARNING = 'RELEARNING'

    ALL = (NEW, LEARNING, REVIEW, RELEARNING)


class ReviewContext(str, Enum):
    """The three content domains that share the algorithm but not its state."""
    VOCABULARY = 'VOCABULARY'
    LISTENING = 'LISTENING'
    GENERIC = 'GENERIC'


@dataclass
class CardStateDTO:
    """Engine-side view of one (student, card, context) schedule row."""
    student_id: str
    card_id: str
    state: str = CardStateEnum.NEW
    stability: float = 0.0      # FSRS S (days)
    difficulty: float = 0.0     # FSRS D (1-10)
    due: Optional[datetime.datetime] = None
    reps: int = 0
    lapses: int = 0
    last_review: Optional[datetime.datetime] = None

    @classmethod
    def new(cls, student_id: str, card_id: str, due: datetime.datetime) -> 'CardStateDTO':
        return cls(student_id=student_id, card_id=card_id, due=due)

    @property
    def has_memory(self) -> bool:
        # Cards that only walked learning steps have not been through the memory model yet
        return self.state != CardStateEnum.NEW and self.stability > 0

    def evolve(self, **changes) -> 'CardStateDTO':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'studentId': self.student_id,
            'cardId': self.card_id,
            'state': self.state,
            'stability': self.stability,
            'difficulty': self.difficulty,
            'due': self.due.isoformat() if self.due else None,
            'reps': self.reps,
            'lapses': self.lapses,
            'lastReview': self.last_review.isoformat() if self.last_review else None,
        }


@dataclass(frozen=True)
class NextState:
    stability: float
    difficulty: float
    interval_days: float


@dataclass(frozen=True)
class NextStates:
    again: NextState
    hard: NextState
    good: NextState
    easy: NextState

    def for_rating(self, rating: int) -> NextState:
        return {
            Rating.Again: self.again,
            Rating.Hard: self.hard,
            Rating.Good: self.good,
            Rating.Easy: self.easy,
        }[Rating(rating)]


@dataclass
class ReviewQueueConfig:
    new_cards: int = FSRSDefaultConfig.FSRS_NEW_CARDS
    max_due: int = FSRSDefaultConfig.FSRS_MAX_DUE
    min_due: int = FSRSDefaultConfig.FSRS_MIN_DUE
    deck_id: Optional[str] = None


@dataclass
class CandidateConfig:
    max_cards: int = FSRSDefaultConfig.FSRS_CANDIDATE_MAX_CARDS
    vocabulary_confidence_threshold: float = FSRSDefaultConfig.FSRS_VOCABULARY_CONFIDENCE_THRESHOLD
    listening_candidate_threshold: float = FSRSDefaultConfig.FSRS_LISTENING_CANDIDATE_THRESHOLD
    new_cards: int = FSRSDefaultConfig.FSRS_NEW_CARDS
    max_due: int = FSRSDefaultConfig.FSRS_MAX_DUE
    min_due: int = FSRSDefaultConfig.FSRS_MIN_DUE
    shuffle: bool = False


@dataclass
class ReviewQueue:
    due_items: List[CardStateDTO] = field(default_factory=list)
    new_items: List[CardStateDTO] = field(default_factory=list)

    @property
    def card_ids(self) -> List[str]:
        return [item.card_id for item in self.due_items + self.new_items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dueItems': [item.to_dict() for item in self.due_items],
            'newItems': [item.to_dict() for item in self.new_items],
        }


@dataclass
class CandidateWarnings:
    """Advisory quality signal; never blocks a session."""
    suboptimal_candidates: int
    recommended_max_cards: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'suboptimalCandidates': self.suboptimal_candidates,
            'recommendedMaxCards': self.recommended_max_cards,
        }


@dataclass
class Candidate:
    card_id: str
    vocabulary_retrievability: float
    listening_retrievability: Optional[float] = None
    listening_ready: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cardId': self.card_id,
            'vocabularyRetrievability': self.vocabulary_retrievability,
            'listeningRetrievability': self.listening_retrievability,
            'listeningReady': self.listening_ready,
        }


@dataclass
class CandidateSelection:
    candidates: List[Candidate] = field(default_factory=list)
    warnings: Optional[CandidateWarnings] = None

    @property
    def card_ids(self) -> List[str]:
        return [c.card_id for c in self.candidates]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'candidates': [c.to_dict() for c in self.candidates]}
        if self.warnings is not None:
            data['warnings'] = self.warnings.to_dict()
        return data


@dataclass
class ListeningReviewQueue(ReviewQueue):
    warnings: Optional[CandidateWarnings] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.warnings is not None:
            data['warnings'] = self.warnings.to_dict()
        return data


# --- Request / Config Schemas ---

class ReviewQueueConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    new_cards = fields.Int(data_key='newCards', load_default=FSRSDefaultConfig.FSRS_NEW_CARDS,
                           validate=validate.Range(min=0))
    max_due = fields.Int(data_key='maxDue', load_default=FSRSDefaultConfig.FSRS_MAX_DUE,
                         validate=validate.Range(min=0))
    min_due = fields.Int(data_key='minDue', load_default=FSRSDefaultConfig.FSRS_MIN_DUE,
                         validate=validate.Range(min=0))
    deck_id = fields.Str(data_key='deckId', load_default=None, allow_none=True)

    @post_load
    def make_config(self, data, **kwargs):
        return ReviewQueueConfig(**data)


class CandidateConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    max_cards = fields.Int(data_key='maxCards', load_default=FSRSDefaultConfig.FSRS_CANDIDATE_MAX_CARDS,
                           validate=validate.Range(min=0))
    vocabulary_confidence_threshold = fields.Float(
        data_key='vocabularyConfidenceThreshold',
        load_default=FSRSDefaultConfig.FSRS_VOCABULARY_CONFIDENCE_THRESHOLD,
        validate=validate.Range(min=0.0, max=1.0),
    )
    listening_candidate_threshold = fields.Float(
        data_key='listeningCandidateThreshold',
        load_default=FSRSDefaultConfig.FSRS_LISTENING_CANDIDATE_THRESHOLD,
        validate=validate.Range(min=0.0, max=1.0),
    )
    new_cards = fields.Int(data_key='newCards', load_default=FSRSDefaultConfig.FSRS_NEW_CARDS,
                           validate=validate.Range(min=0))
    max_due = fields.Int(data_key='maxDue', load_default=FSRSDefaultConfig.FSRS_MAX_DUE,
                         validate=validate.Range(min=0))
    min_due = fields.Int(data_key='minDue', load_default=FSRSDefaultConfig.FSRS_MIN_DUE,
                         validate=validate.Range(min=0))
    shuffle = fields.Bool(data_key='shuffleCards', load_default=False)

    @post_load
    def make_config(self, data, **kwargs):
        return CandidateConfig(**data)


class ReviewRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    card_id = fields.Str(data_key='cardId', required=True, validate=validate.Length(min=1))
    # Range is enforced by the recorder so that the core owns the rule
    rating = fields.Int(required=True, strict=True)
    context = fields.Str(load_default=ReviewContext.VOCABULARY.value,
                         validate=validate.OneOf([c.value for c in ReviewContext]))
    session_id = fields.Str(data_key='sessionId', load_default=None, allow_none=True)
    learning_steps = fields.List(
        fields.Str(validate=validate.Regexp(
            LEARNING_STEP_PATTERN,
            error='Learning step must be in format like "3m", "15m", "1h", "2d"',
        )),
        data_key='learningSteps',
        load_default=None,
        allow_none=True,
    )
