import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from tutorstack_app import create_app, db
from tutorstack_app.core.config import Config
from tutorstack_app.modules.content.models import GenericCard, VocabularyCard
from tutorstack_app.modules.fsrs.schemas import CardStateDTO, CardStateEnum, ReviewContext
from tutorstack_app.modules.fsrs.services.context_service import get_store
from tutorstack_app.modules.students.models import Student, StudentStatus

NOW = datetime(2024, 5, 10, 8, 0, tzinfo=timezone.utc)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    SYSTEM_TIMEZONE = 'UTC'
    JOB_WORKER_ENABLED = False
    LOG_DIR = None


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_student(app):
    def _make(name='Student', status=StudentStatus.ACTIVE, is_archived=False):
        student = Student(name=name, status=status, is_archived=is_archived)
        db.session.add(student)
        db.session.commit()
        return student.id
    return _make


@pytest.fixture
def student_id(make_student):
    return make_student()


@pytest.fixture
def make_card(app):
    """Vocabulary card; ``minutes_old`` orders creation time relative to NOW."""
    counter = {'n': 0}

    def _make(deck_id='deck-1', minutes_old=None, generic=False):
        counter['n'] += 1
        n = counter['n']
        created_at = NOW - timedelta(days=30) + timedelta(minutes=n) if minutes_old is None \
            else NOW - timedelta(minutes=minutes_old)
        if generic:
            card = GenericCard(deck_id=deck_id, front=f'front {n}', back=f'back {n}', created_at=created_at)
        else:
            card = VocabularyCard(
                deck_id=deck_id,
                english_word=f'word {n}',
                chinese_translation=f'词 {n}',
                pinyin=f'ci {n}',
                created_at=created_at,
            )
        db.session.add(card)
        db.session.commit()
        return card.id
    return _make


@pytest.fixture
def make_state(app):
    """Insert a card state row directly, bypassing the recorder."""
    def _make(student_id, card_id, context=ReviewContext.VOCABULARY, **fields):
        store = get_store(context)
        dto = CardStateDTO(student_id=student_id, card_id=card_id, due=fields.pop('due', NOW), **fields)
        if dto.state == CardStateEnum.NEW:
            dto.last_review = None
        row = store.state_model.from_dto(dto)
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def make_review_state(make_state):
    """REVIEW card with the given stability, last reviewed ``days_ago`` days before NOW."""
    def _make(student_id, card_id, stability, days_ago, context=ReviewContext.VOCABULARY,
              difficulty=5.0, due=None, reps=3):
        last_review = NOW - timedelta(days=days_ago)
        return make_state(
            student_id, card_id, context,
            state=CardStateEnum.REVIEW,
            stability=stability,
            difficulty=difficulty,
            last_review=last_review,
            due=due or last_review + timedelta(days=stability),
            reps=reps,
        )
    return _make
