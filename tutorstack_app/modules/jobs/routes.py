from flask import Blueprint, current_app, request, jsonify
from marshmallow import ValidationError as SchemaValidationError
from tutorstack_app.core.error_handlers import ValidationError, success_response
from .schemas import EnqueueJobSchema
from .services.job_service import JobService

jobs_bp = Blueprint('jobs_api', __name__)


@jobs_bp.route('', methods=['POST'])
def enqueue_job():
    """
    Enqueue a job.
    Input: {"type": "REBUILD_VOCABULARY_CACHE", "payload": {"studentId": "..."}}
    """
    try:
        data = EnqueueJobSchema().load(request.get_json(silent=True) or {})
    except SchemaValidationError as e:
        raise ValidationError(errors=e.messages)
    job = JobService.enqueue(data['type'], data['payload'])
    return jsonify(success_response(job.to_dict())), 201


@jobs_bp.route('/worker/run', methods=['POST'])
def run_worker():
    """Drain one batch of pending jobs synchronously."""
    limit = request.args.get('limit', type=int) or current_app.config.get('JOB_WORKER_BATCH_SIZE', 10)
    jobs = JobService.process_pending_jobs(limit)
    return jsonify(success_response([job.to_dict() for job in jobs])), 200


@jobs_bp.route('/<job_id>', methods=['GET'])
def get_job(job_id):
    return jsonify(success_response(JobService.get(job_id).to_dict())), 200
