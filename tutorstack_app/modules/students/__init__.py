"""Student status lookup used by the job worker."""
