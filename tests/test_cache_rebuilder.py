from datetime import timedelta

import pytest

from tutorstack_app import db
from tutorstack_app.modules.fsrs.schemas import CardStateEnum, ReviewContext
from tutorstack_app.modules.fsrs.services.assignment_service import CardAssignmentService
from tutorstack_app.modules.fsrs.services.context_service import get_store
from tutorstack_app.modules.fsrs.services.rebuild_service import CacheRebuilder
from tutorstack_app.modules.fsrs.services.recorder_service import ReviewRecorder
from tutorstack_app.modules.fsrs.signals import cache_rebuilt

# (card index, rating, minutes after the first review)
SCRIPT = [
    (0, 1, 0), (0, 3, 4), (0, 3, 20), (0, 3, 60), (0, 3, 60 * 24 * 3), (0, 1, 60 * 24 * 12),
    (0, 3, 60 * 24 * 12 + 5), (0, 4, 60 * 24 * 20),
    (1, 4, 10), (1, 2, 60 * 24 * 4), (1, 3, 60 * 24 * 15),
    (2, 1, 30), (2, 1, 40), (2, 1, 50), (2, 1, 60), (2, 2, 60 * 24 * 2),
]


def _snapshot(student_id, context=ReviewContext.VOCABULARY):
    store = get_store(context)
    db.session.expire_all()
    return {row.card_id: row.to_dto() for row in store.states_for_student(student_id)}


def _assert_same(actual, expected):
    assert actual.keys() == expected.keys()
    for card_id, want in expected.items():
        got = actual[card_id]
        assert got.state == want.state
        assert got.reps == want.reps
        assert got.lapses == want.lapses
        assert got.stability == pytest.approx(want.stability)
        assert got.difficulty == pytest.approx(want.difficulty)
        assert got.due == want.due
        assert got.last_review == want.last_review


@pytest.fixture
def reviewed_student(student_id, make_card, now):
    """Four assigned cards; three reviewed through the recorder, one untouched."""
    card_ids = [make_card() for _ in range(4)]
    CardAssignmentService.initialize_card_states(student_id, card_ids, ReviewContext.VOCABULARY)
    start = now - timedelta(days=30)
    for index, rating, minutes in SCRIPT:
        ReviewRecorder.record_review(student_id, card_ids[index], rating, ReviewContext.VOCABULARY,
                                     now=start + timedelta(minutes=minutes))
    return student_id, card_ids


def test_replay_reproduces_recorded_states(app, reviewed_student):
    student_id, _ = reviewed_student
    before = _snapshot(student_id)

    result = CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    assert result == {'cardsRebuilt': 4}
    _assert_same(_snapshot(student_id), before)


def test_unreviewed_card_rebuilt_as_new(app, reviewed_student):
    student_id, card_ids = reviewed_student
    before = _snapshot(student_id)[card_ids[3]]

    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    after = _snapshot(student_id)[card_ids[3]]
    assert after.state == CardStateEnum.NEW
    assert after.reps == 0
    assert after.last_review is None
    assert after.due == before.due


def test_rebuild_is_idempotent(app, reviewed_student):
    student_id, _ = reviewed_student

    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)
    first = _snapshot(student_id)
    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    _assert_same(_snapshot(student_id), first)


def test_rebuild_repairs_corrupted_cache(app, reviewed_student):
    student_id, card_ids = reviewed_student
    before = _snapshot(student_id)
    row = get_store(ReviewContext.VOCABULARY).load_state(student_id, card_ids[1])
    row.stability = 999.0
    row.reps = 42
    row.state = CardStateEnum.RELEARNING
    db.session.commit()

    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    _assert_same(_snapshot(student_id), before)


def test_rebuild_restores_deleted_rows_from_history(app, reviewed_student):
    student_id, card_ids = reviewed_student
    before = _snapshot(student_id)
    store = get_store(ReviewContext.VOCABULARY)
    db.session.delete(store.load_state(student_id, card_ids[0]))
    db.session.commit()

    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    _assert_same(_snapshot(student_id), before)


def test_rebuild_leaves_other_contexts_alone(app, reviewed_student, make_state):
    student_id, card_ids = reviewed_student
    make_state(student_id, card_ids[0], ReviewContext.LISTENING,
               state=CardStateEnum.REVIEW, stability=7.0, difficulty=4.0, reps=2)

    result = CacheRebuilder.rebuild_cache(student_id, ReviewContext.LISTENING)

    # No listening history: the assigned card is reset to NEW, vocabulary untouched
    assert result == {'cardsRebuilt': 1}
    assert _snapshot(student_id, ReviewContext.LISTENING)[card_ids[0]].state == CardStateEnum.NEW
    assert _snapshot(student_id)[card_ids[0]].state != CardStateEnum.NEW


def test_cache_rebuilt_signal(app, reviewed_student):
    student_id, _ = reviewed_student
    received = []

    def receiver(sender, **kwargs):
        received.append(kwargs)

    with cache_rebuilt.connected_to(receiver):
        CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    assert received == [{'student_id': student_id, 'context': ReviewContext.VOCABULARY, 'cards_rebuilt': 4}]


def test_replay_uses_the_steps_each_review_was_recorded_with(app, student_id, make_card, now):
    custom, mixed = make_card(), make_card()
    CardAssignmentService.initialize_card_states(student_id, [custom, mixed], ReviewContext.VOCABULARY)
    ReviewRecorder.record_review(student_id, custom, 1, ReviewContext.VOCABULARY, now=now,
                                 learning_steps=['1m', '10m'])
    ReviewRecorder.record_review(student_id, custom, 3, ReviewContext.VOCABULARY,
                                 now=now + timedelta(minutes=2), learning_steps=['1m', '10m'])
    # Default steps first, then a session with a shorter ladder
    ReviewRecorder.record_review(student_id, mixed, 1, ReviewContext.VOCABULARY, now=now)
    ReviewRecorder.record_review(student_id, mixed, 3, ReviewContext.VOCABULARY,
                                 now=now + timedelta(minutes=5), learning_steps=['2m'])
    before = _snapshot(student_id)
    assert before[custom].state == CardStateEnum.REVIEW

    CacheRebuilder.rebuild_cache(student_id, ReviewContext.VOCABULARY)

    _assert_same(_snapshot(student_id), before)
