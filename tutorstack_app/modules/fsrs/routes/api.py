from flask import Blueprint, request, jsonify
from marshmallow import ValidationError as SchemaValidationError
from tutorstack_app.core.error_handlers import ValidationError, success_response
from tutorstack_app.modules.jobs.models import JobType
from tutorstack_app.modules.jobs.services.job_service import JobService
from ..interface import FSRSInterface
from ..schemas import CandidateConfigSchema, ReviewContext, ReviewQueueConfigSchema, ReviewRequestSchema
from ..services.context_service import resolve_context

api_bp = Blueprint('fsrs_api', __name__)


def _load(schema, data):
    try:
        return schema.load(data or {})
    except SchemaValidationError as e:
        raise ValidationError(errors=e.messages)


def _context_arg(default=ReviewContext.VOCABULARY):
    value = request.args.get('context')
    return resolve_context(value) if value else default


@api_bp.route('/students/<student_id>/reviews', methods=['POST'])
def record_review(student_id):
    """
    Record a card review.
    Input: {
        "cardId": str,
        "rating": int (1-4),
        "context": "VOCABULARY" | "LISTENING" | "GENERIC",
        "sessionId": str (optional),
        "learningSteps": ["3m", "15m"] (optional)
    }
    """
    data = _load(ReviewRequestSchema(), request.get_json(silent=True))
    state = FSRSInterface.record_review(
        student_id=student_id,
        card_id=data['card_id'],
        rating=data['rating'],
        context=data['context'],
        session_id=data['session_id'],
        learning_steps=data['learning_steps'],
    )
    return jsonify(success_response(state.to_dict(), 'Review recorded')), 200


@api_bp.route('/students/<student_id>/queue', methods=['POST'])
def initial_queue(student_id):
    config = _load(ReviewQueueConfigSchema(), request.get_json(silent=True))
    queue = FSRSInterface.get_initial_review_queue(student_id, config, _context_arg())
    return jsonify(success_response(queue.to_dict())), 200


@api_bp.route('/students/<student_id>/decks/<deck_id>/listening-candidates', methods=['POST'])
def listening_candidates(student_id, deck_id):
    config = _load(CandidateConfigSchema(), request.get_json(silent=True))
    selection = FSRSInterface.get_listening_candidates_from_vocabulary(student_id, deck_id, config)
    return jsonify(success_response(selection.to_dict())), 200


@api_bp.route('/students/<student_id>/decks/<deck_id>/listening-queue', methods=['POST'])
def listening_queue(student_id, deck_id):
    config = _load(CandidateConfigSchema(), request.get_json(silent=True))
    queue = FSRSInterface.get_listening_review_queue(student_id, deck_id, config)
    return jsonify(success_response(queue.to_dict())), 200


@api_bp.route('/students/<student_id>/decks/<deck_id>/listening-suggestion', methods=['POST'])
def listening_suggestion(student_id, deck_id):
    config = _load(CandidateConfigSchema(), request.get_json(silent=True))
    count = FSRSInterface.suggest_listening_count(student_id, deck_id, config)
    return jsonify(success_response({'suggestedCount': count})), 200


@api_bp.route('/students/<student_id>/decks/<deck_id>/fill-in-blank-candidates', methods=['POST'])
def fill_in_blank_candidates(student_id, deck_id):
    config = _load(CandidateConfigSchema(), request.get_json(silent=True))
    selection = FSRSInterface.get_fill_in_blank_candidates(student_id, deck_id, config)
    return jsonify(success_response(selection.to_dict())), 200


@api_bp.route('/students/<student_id>/stats', methods=['GET'])
def stats(student_id):
    return jsonify(success_response(FSRSInterface.get_stats(student_id, _context_arg()))), 200


@api_bp.route('/students/<student_id>/preview/<card_id>', methods=['GET'])
def preview_intervals(student_id, card_id):
    """Candidate intervals (days) per rating, without recording a review."""
    previews = FSRSInterface.preview_intervals(student_id, card_id, _context_arg())
    return jsonify(success_response({'cardId': card_id, 'previews': previews})), 200


@api_bp.route('/students/<student_id>/optimize', methods=['POST'])
def optimize_parameters(student_id):
    """Queue a parameter optimization job; the worker runs it."""
    job = JobService.enqueue(JobType.optimize(_context_arg()), {'studentId': student_id})
    return jsonify(success_response(job.to_dict(), 'Optimization queued')), 202


@api_bp.route('/students/<student_id>/rebuild', methods=['POST'])
def rebuild_cache(student_id):
    job = JobService.enqueue(JobType.rebuild(_context_arg()), {'studentId': student_id})
    return jsonify(success_response(job.to_dict(), 'Rebuild queued')), 202
