# File: tutorstack_app/modules/fsrs/models.py
"""
Persistence for the scheduling core.

Each review context owns three tables with identical shape:
- a card state table (derived cache, one row per student x card)
- an append-only review history (source of truth)
- a parameter table (at most one active row per student)
"""
from datetime import datetime, timezone
from sqlalchemy.orm import declared_attr
from tutorstack_app.core.extensions import db
from tutorstack_app.utils.time_utils import ensure_utc
from .schemas import CardStateDTO, CardStateEnum


def _utcnow():
    return datetime.now(timezone.utc)


class CardStateMixin:
    __card_table__ = None

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def student_id(cls):
        return db.Column(db.String(36), db.ForeignKey('students.id'), nullable=False, index=True)

    @declared_attr
    def card_id(cls):
        return db.Column(db.String(36), db.ForeignKey(f'{cls.__card_table__}.id'), nullable=False, index=True)

    state = db.Column(db.String(20), nullable=False, default=CardStateEnum.NEW)
    stability = db.Column(db.Float, nullable=False, default=0.0)
    difficulty = db.Column(db.Float, nullable=False, default=0.0)
    due = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    reps = db.Column(db.Integer, nullable=False, default=0)
    lapses = db.Column(db.Integer, nullable=False, default=0)
    last_review = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @declared_attr
    def __table_args__(cls):
        return (
            db.UniqueConstraint('student_id', 'card_id', name=f'uq_{cls.__tablename__}_student_card'),
            db.Index(f'ix_{cls.__tablename__}_student_due', 'student_id', 'due'),
        )

    def to_dto(self) -> CardStateDTO:
        return CardStateDTO(
            student_id=self.student_id,
            card_id=self.card_id,
            state=self.state,
            stability=self.stability or 0.0,
            difficulty=self.difficulty or 0.0,
            due=ensure_utc(self.due),
            reps=self.reps or 0,
            lapses=self.lapses or 0,
            last_review=ensure_utc(self.last_review),
        )

    def apply_dto(self, dto: CardStateDTO) -> None:
        self.state = dto.state
        self.stability = dto.stability
        self.difficulty = dto.difficulty
        self.due = dto.due
        self.reps = dto.reps
        self.lapses = dto.lapses
        self.last_review = dto.last_review

    @classmethod
    def from_dto(cls, dto: CardStateDTO):
        row = cls(student_id=dto.student_id, card_id=dto.card_id)
        row.apply_dto(dto)
        return row

    def __repr__(self):
        return f"<{type(self).__name__}({self.student_id}, {self.card_id}, {self.state})>"


class ReviewHistoryMixin:
    __card_table__ = None

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def student_id(cls):
        return db.Column(db.String(36), db.ForeignKey('students.id'), nullable=False, index=True)

    @declared_attr
    def card_id(cls):
        return db.Column(db.String(36), db.ForeignKey(f'{cls.__card_table__}.id'), nullable=False, index=True)

    session_id = db.Column(db.String(36), nullable=True, index=True)
    rating = db.Column(db.Integer, nullable=False)  # 1=Again, 2=Hard, 3=Good, 4=Easy
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    is_learning_step = db.Column(db.Boolean, nullable=False, default=False)
    # Step schedule in force for this review, e.g. ["3m", "15m", "30m"]
    learning_steps = db.Column(db.JSON, nullable=True)

    # Snapshot of the state before this review (audit + optimizer input)
    previous_state = db.Column(db.String(20), nullable=False)
    previous_difficulty = db.Column(db.Float, nullable=False)
    previous_stability = db.Column(db.Float, nullable=False)
    previous_due = db.Column(db.DateTime(timezone=True), nullable=True)

    @declared_attr
    def __table_args__(cls):
        return (
            db.Index(f'ix_{cls.__tablename__}_student_card_step', 'student_id', 'card_id', 'is_learning_step'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'studentId': self.student_id,
            'cardId': self.card_id,
            'sessionId': self.session_id,
            'rating': self.rating,
            'reviewedAt': ensure_utc(self.reviewed_at).isoformat(),
            'isLearningStep': self.is_learning_step,
            'learningSteps': self.learning_steps,
            'previousState': self.previous_state,
            'previousDifficulty': self.previous_difficulty,
            'previousStability': self.previous_stability,
            'previousDue': ensure_utc(self.previous_due).isoformat() if self.previous_due else None,
        }


class FsrsParamsMixin:
    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def student_id(cls):
        return db.Column(db.String(36), db.ForeignKey('students.id'), nullable=False, index=True)

    w = db.Column(db.JSON, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    training_data_size = db.Column(db.Integer, nullable=False, default=0)
    last_optimized = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'studentId': self.student_id,
            'w': list(self.w),
            'isActive': self.is_active,
            'trainingDataSize': self.training_data_size,
            'lastOptimized': ensure_utc(self.last_optimized).isoformat(),
        }


# --- Vocabulary ---

class VocabularyCardState(CardStateMixin, db.Model):
    __tablename__ = 'vocabulary_card_states'
    __card_table__ = 'vocabulary_cards'


class VocabularyReviewHistory(ReviewHistoryMixin, db.Model):
    __tablename__ = 'vocabulary_review_history'
    __card_table__ = 'vocabulary_cards'


class VocabularyFsrsParams(FsrsParamsMixin, db.Model):
    __tablename__ = 'vocabulary_fsrs_params'


# --- Listening (same vocabulary cards, independent schedule) ---

class ListeningCardState(CardStateMixin, db.Model):
    __tablename__ = 'listening_card_states'
    __card_table__ = 'vocabulary_cards'


class ListeningReviewHistory(ReviewHistoryMixin, db.Model):
    __tablename__ = 'listening_review_history'
    __card_table__ = 'vocabulary_cards'


class ListeningFsrsParams(FsrsParamsMixin, db.Model):
    __tablename__ = 'listening_fsrs_params'


# --- Generic decks ---

class GenericCardState(CardStateMixin, db.Model):
    __tablename__ = 'generic_card_states'
    __card_table__ = 'generic_cards'


class GenericReviewHistory(ReviewHistoryMixin, db.Model):
    __tablename__ = 'generic_review_history'
    __card_table__ = 'generic_cards'


class GenericFsrsParams(FsrsParamsMixin, db.Model):
    __tablename__ = 'generic_fsrs_params'
