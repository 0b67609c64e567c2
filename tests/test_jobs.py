import pytest

from tutorstack_app.core.error_handlers import ValidationError
from tutorstack_app.modules.fsrs.interface import FSRSInterface
from tutorstack_app.modules.fsrs.models import GenericCardState, VocabularyCardState
from tutorstack_app.modules.fsrs.schemas import CardStateEnum, ReviewContext
from tutorstack_app.modules.jobs.models import Job, JobStatus, JobType
from tutorstack_app.modules.jobs.services.job_service import JobService
from tutorstack_app.modules.students.models import StudentStatus


def _run_one(job):
    JobService.process_pending_jobs(limit=10)
    return JobService.get(job.id)


def test_rebuild_job_completes(app, student_id, make_card, make_state):
    make_state(student_id, make_card(), state=CardStateEnum.NEW)
    job = JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'studentId': student_id})

    done = _run_one(job)

    assert done.status == JobStatus.COMPLETED
    assert done.result == {'cardsRebuilt': 1}
    assert done.error is None
    assert done.started_at is not None and done.completed_at is not None


def test_optimize_job_with_sparse_history_completes_as_noop(app, student_id):
    job = JobService.enqueue(JobType.OPTIMIZE_LISTENING_PARAMS, {'studentId': student_id})

    done = _run_one(job)

    assert done.status == JobStatus.COMPLETED
    assert done.result['skipped'] is True
    assert 'insufficient' in done.result['message']


def test_initialize_job_creates_states_for_deck(app, student_id, make_card):
    card_ids = [make_card(deck_id='deck-g', generic=True) for _ in range(3)]
    make_card(deck_id='other', generic=True)
    job = JobService.enqueue(JobType.INITIALIZE_GENERIC_CARD_STATES,
                             {'studentId': student_id, 'deckId': 'deck-g'})

    done = _run_one(job)

    assert done.status == JobStatus.COMPLETED
    assert done.result == {'cardsInitialized': 3}
    states = GenericCardState.query.filter_by(student_id=student_id).all()
    assert sorted(s.card_id for s in states) == sorted(card_ids)
    assert all(s.state == CardStateEnum.NEW for s in states)


@pytest.mark.parametrize('status, archived', [
    (StudentStatus.INACTIVE, False),
    (StudentStatus.PAUSED, False),
    (StudentStatus.ACTIVE, True),
])
def test_unschedulable_student_is_skipped(app, make_student, status, archived):
    student_id = make_student(status=status, is_archived=archived)
    job = JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'studentId': student_id})

    done = _run_one(job)

    assert done.status == JobStatus.SKIPPED
    assert done.error is None
    assert 'skipped' in done.result['message']


def test_invalid_payload_fails(app):
    job = JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'student': 'x'})

    done = _run_one(job)

    assert done.status == JobStatus.FAILED
    assert 'studentId' in done.error


def test_initialize_payload_requires_deck(app, student_id):
    job = JobService.enqueue(JobType.INITIALIZE_VOCABULARY_CARD_STATES, {'studentId': student_id})

    assert _run_one(job).status == JobStatus.FAILED


def test_unknown_student_fails(app):
    job = JobService.enqueue(JobType.REBUILD_GENERIC_CACHE, {'studentId': 'missing'})

    done = _run_one(job)

    assert done.status == JobStatus.FAILED
    assert 'not found' in done.error


def test_handler_exception_marks_failed(app, student_id, monkeypatch):
    def _boom(student_id, context):
        raise RuntimeError('boom')

    monkeypatch.setattr(FSRSInterface, 'rebuild_cache', staticmethod(_boom))
    job = JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'studentId': student_id})

    done = _run_one(job)

    assert done.status == JobStatus.FAILED
    assert done.error == 'boom'


def test_limit_is_respected(app, student_id):
    for _ in range(3):
        JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'studentId': student_id})

    processed = JobService.process_pending_jobs(limit=2)

    assert len(processed) == 2
    assert all(job.status == JobStatus.COMPLETED for job in processed)
    assert Job.query.filter_by(status=JobStatus.PENDING).count() == 1


def test_rerunning_rebuild_is_idempotent(app, student_id, make_card, make_state):
    make_state(student_id, make_card(), state=CardStateEnum.NEW)
    for _ in range(2):
        JobService.enqueue(JobType.REBUILD_VOCABULARY_CACHE, {'studentId': student_id})
        JobService.process_pending_jobs()

    assert Job.query.filter_by(status=JobStatus.COMPLETED).count() == 2
    assert VocabularyCardState.query.filter_by(student_id=student_id).count() == 1


def test_enqueue_unknown_type(app):
    with pytest.raises(ValidationError):
        JobService.enqueue('DELETE_EVERYTHING', {})


def test_job_type_helpers():
    assert JobType.optimize(ReviewContext.LISTENING) == JobType.OPTIMIZE_LISTENING_PARAMS
    assert JobType.rebuild(ReviewContext.GENERIC) == JobType.REBUILD_GENERIC_CACHE
    assert JobType.initialize(ReviewContext.VOCABULARY) == JobType.INITIALIZE_VOCABULARY_CARD_STATES


def test_worker_endpoint(client, app, student_id):
    job = JobService.enqueue(JobType.OPTIMIZE_VOCABULARY_PARAMS, {'studentId': student_id})

    response = client.post('/api/jobs/worker/run')

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert [j['id'] for j in body['data']] == [job.id]
    assert client.get(f'/api/jobs/{job.id}').get_json()['data']['status'] == JobStatus.COMPLETED


def test_enqueue_endpoint_and_missing_job(client, app, student_id):
    response = client.post('/api/jobs', json={
        'type': JobType.REBUILD_LISTENING_CACHE, 'payload': {'studentId': student_id},
    })
    assert response.status_code == 201
    assert response.get_json()['data']['status'] == JobStatus.PENDING

    missing = client.get('/api/jobs/does-not-exist')
    assert missing.status_code == 404
    assert missing.get_json()['code'] == 'NOT_FOUND'
