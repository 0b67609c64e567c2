import pytest

from tutorstack_app.modules.fsrs.schemas import CardStateEnum, ReviewContext
from tutorstack_app.modules.fsrs.services.assignment_service import CardAssignmentService
from tutorstack_app.modules.jobs.models import Job, JobStatus, JobType


@pytest.fixture
def assigned(student_id, make_card):
    card_ids = [make_card() for _ in range(2)]
    CardAssignmentService.initialize_card_states(student_id, card_ids, ReviewContext.VOCABULARY)
    return card_ids


def test_record_review(client, student_id, assigned):
    response = client.post(f'/api/fsrs/students/{student_id}/reviews', json={
        'cardId': assigned[0], 'rating': 4, 'sessionId': 'sess-1',
    })

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['state'] == CardStateEnum.REVIEW
    assert body['data']['reps'] == 1


def test_record_review_with_custom_steps(client, student_id, assigned):
    response = client.post(f'/api/fsrs/students/{student_id}/reviews', json={
        'cardId': assigned[0], 'rating': 3, 'learningSteps': ['5m', '1h'],
    })

    assert response.status_code == 200
    assert response.get_json()['data']['state'] == CardStateEnum.LEARNING


def test_record_review_without_state(client, student_id, make_card):
    response = client.post(f'/api/fsrs/students/{student_id}/reviews', json={
        'cardId': make_card(), 'rating': 3,
    })

    assert response.status_code == 409
    assert response.get_json()['code'] == 'CARD_STATE_MISSING'


def test_record_review_rejects_out_of_range_rating(client, student_id, assigned):
    response = client.post(f'/api/fsrs/students/{student_id}/reviews', json={
        'cardId': assigned[0], 'rating': 5,
    })

    assert response.status_code == 400
    assert response.get_json()['code'] == 'INVALID_RATING'


@pytest.mark.parametrize('body', [
    {'rating': 3},
    {'cardId': 'x', 'rating': 'good'},
    {'cardId': 'x', 'rating': 3, 'context': 'READING'},
    {'cardId': 'x', 'rating': 3, 'learningSteps': ['soon']},
])
def test_record_review_validation(client, student_id, body):
    response = client.post(f'/api/fsrs/students/{student_id}/reviews', json=body)

    assert response.status_code == 400
    assert response.get_json()['code'] == 'VALIDATION_ERROR'


def test_queue_endpoint(client, student_id, assigned):
    response = client.post(f'/api/fsrs/students/{student_id}/queue', json={'newCards': 1})

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['dueItems'] == []
    assert [item['cardId'] for item in data['newItems']] == [assigned[0]]


def test_queue_endpoint_rejects_bad_config(client, student_id):
    response = client.post(f'/api/fsrs/students/{student_id}/queue', json={'newCards': -1})

    assert response.status_code == 400


def test_queue_endpoint_unknown_context(client, student_id):
    response = client.post(f'/api/fsrs/students/{student_id}/queue?context=reading', json={})

    assert response.status_code == 400
    assert response.get_json()['code'] == 'UNKNOWN_CONTEXT'


def test_listening_candidates_endpoint(client, student_id, assigned):
    response = client.post(f'/api/fsrs/students/{student_id}/decks/deck-1/listening-candidates', json={})

    assert response.status_code == 200
    # NEW vocabulary cards have no recall yet and are never candidates
    assert response.get_json()['data'] == {'candidates': []}


def test_stats_and_preview(client, student_id, assigned):
    client.post(f'/api/fsrs/students/{student_id}/reviews', json={'cardId': assigned[0], 'rating': 4})

    stats = client.get(f'/api/fsrs/students/{student_id}/stats').get_json()['data']
    assert stats['total'] == 2
    assert stats['byState'][CardStateEnum.NEW] == 1
    assert stats['byState'][CardStateEnum.REVIEW] == 1
    assert stats['totalReviews'] == 1

    preview = client.get(f'/api/fsrs/students/{student_id}/preview/{assigned[0]}').get_json()['data']
    intervals = preview['previews']
    assert intervals['again'] <= intervals['hard'] <= intervals['good'] <= intervals['easy']


def test_preview_missing_state(client, student_id):
    response = client.get(f'/api/fsrs/students/{student_id}/preview/nope')

    assert response.status_code == 409


@pytest.mark.parametrize('action, context, job_type', [
    ('optimize', 'listening', JobType.OPTIMIZE_LISTENING_PARAMS),
    ('rebuild', 'GENERIC', JobType.REBUILD_GENERIC_CACHE),
])
def test_optimize_and_rebuild_are_queued(client, student_id, action, context, job_type):
    response = client.post(f'/api/fsrs/students/{student_id}/{action}?context={context}')

    assert response.status_code == 202
    data = response.get_json()['data']
    assert data['type'] == job_type
    assert data['status'] == JobStatus.PENDING
    assert data['payload'] == {'studentId': student_id}
    assert Job.query.count() == 1


def test_unknown_path_returns_json_404(client):
    response = client.get('/no/such/page')

    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'message': 'Endpoint not found', 'code': 'NOT_FOUND'}


def test_wrong_method_returns_json_405(client, student_id):
    response = client.get(f'/api/fsrs/students/{student_id}/reviews')

    assert response.status_code == 405
    assert response.get_json()['code'] == 'METHOD_NOT_ALLOWED'
