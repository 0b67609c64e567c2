# File: tutorstack_app/modules/content/models.py
import uuid
from datetime import datetime, timezone
from tutorstack_app.core.extensions import db


def _uuid() -> str:
    return str(uuid.uuid4())


class VocabularyCard(db.Model):
    """
    A single vocabulary item. Both the vocabulary and the listening
    schedules point at these rows.
    """
    __tablename__ = 'vocabulary_cards'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    deck_id = db.Column(db.String(36), nullable=False, index=True)
    english_word = db.Column(db.String(255), nullable=False)
    chinese_translation = db.Column(db.String(255), nullable=False)
    pinyin = db.Column(db.String(255), nullable=True)
    audio_url = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)


class GenericCard(db.Model):
    """Free-form front/back card."""
    __tablename__ = 'generic_cards'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    deck_id = db.Column(db.String(36), nullable=False, index=True)
    front = db.Column(db.Text, nullable=False)
    back = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
