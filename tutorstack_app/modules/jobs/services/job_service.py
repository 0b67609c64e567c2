import logging
from typing import Any, Dict, List, Optional
from marshmallow import ValidationError as SchemaValidationError
from tutorstack_app.core.error_handlers import NotFoundError, ValidationError
from tutorstack_app.core.extensions import db
from tutorstack_app.modules.students.models import Student
from tutorstack_app.utils.time_utils import utcnow
from ..handlers import JOB_HANDLERS
from ..models import Job, JobStatus

logger = logging.getLogger(__name__)


class JobService:
    """Enqueue and execute background jobs for the scheduling core."""

    @staticmethod
    def enqueue(job_type: str, payload: Dict[str, Any]) -> Job:
        if job_type not in JOB_HANDLERS:
            raise ValidationError(f"Unknown job type {job_type!r}.")
        job = Job(type=job_type, payload=dict(payload or {}), status=JobStatus.PENDING)
        db.session.add(job)
        db.session.commit()
        logger.info("Enqueued job %s (%s)", job.id, job_type)
        return job

    @staticmethod
    def get(job_id: str) -> Job:
        job = db.session.get(Job, job_id)
        if job is None:
            raise NotFoundError(f"Job {job_id} not found.", resource='job')
        return job

    @classmethod
    def process_pending_jobs(cls, limit: int = 10) -> List[Job]:
        """
        Claim up to ``limit`` PENDING jobs and run them one by one.

        Claiming uses SELECT ... FOR UPDATE SKIP LOCKED where the database
        supports it so that two workers never run the same job.
        """
        try:
            jobs = Job.query.filter_by(status=JobStatus.PENDING)\
                .order_by(Job.created_at.asc(), Job.id.asc())\
                .limit(limit)\
                .with_for_update(skip_locked=True)\
                .all()
            now = utcnow()
            for job in jobs:
                job.status = JobStatus.RUNNING
                job.started_at = now
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        job_ids = [job.id for job in jobs]
        for job_id in job_ids:
            cls._run(job_id)
        return [db.session.get(Job, job_id) for job_id in job_ids]

    @classmethod
    def _run(cls, job_id: str) -> None:
        job = db.session.get(Job, job_id)
        schema, handler = JOB_HANDLERS.get(job.type, (None, None))
        if handler is None:
            cls._finish(job_id, JobStatus.FAILED, error=f"Unknown job type {job.type!r}.")
            return

        try:
            payload = schema.load(job.payload or {})
        except SchemaValidationError as e:
            cls._finish(job_id, JobStatus.FAILED, error=f"Invalid payload: {e.messages}")
            return

        student = db.session.get(Student, payload['student_id'])
        if student is None:
            cls._finish(job_id, JobStatus.FAILED, error=f"Student {payload['student_id']} not found.")
            return
        if not student.is_schedulable:
            cls._finish(job_id, JobStatus.SKIPPED, result={
                'message': f"Student {student.id} is inactive or archived; job skipped.",
            })
            return

        try:
            result = handler(payload)
        except Exception as e:
            db.session.rollback()
            logger.exception("Job %s (%s) failed", job_id, job.type)
            cls._finish(job_id, JobStatus.FAILED, error=str(e))
            return

        cls._finish(job_id, JobStatus.COMPLETED, result=result)

    @staticmethod
    def _finish(job_id: str, status: str, result: Optional[Dict[str, Any]] = None,
                error: Optional[str] = None) -> None:
        job = db.session.get(Job, job_id)
        job.status = status
        job.result = result
        job.error = error
        job.completed_at = utcnow()
        db.session.commit()

        if status == JobStatus.FAILED:
            logger.error("Job %s (%s) failed: %s", job_id, job.type, error)
        else:
            logger.info("Job %s (%s) %s", job_id, job.type, status.lower())


def run_job_worker(app) -> None:
    """APScheduler entry point: drain one batch inside an app context."""
    with app.app_context():
        JobService.process_pending_jobs(app.config.get('JOB_WORKER_BATCH_SIZE', 10))
