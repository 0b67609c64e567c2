from .job_service import JobService, run_job_worker

__all__ = ['JobService', 'run_job_worker']
