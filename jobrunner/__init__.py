"""jobrunner - async job execution with timeout, retry and dead-letter handling."""

from .exceptions import JobError, JobNotFoundError, JobTimeoutError
from .models import Config, DeadLetter
from .registry import RegisteredJob, get_job, job, load_modules, registered_jobs
from .runner import JobRunner
from .storage import Storage

__version__ = "1.0.0"

__all__ = [
    "Config",
    "DeadLetter",
    "JobError",
    "JobNotFoundError",
    "JobRunner",
    "RegisteredJob",
    "JobTimeoutError",
    "Storage",
    "get_job",
    "job",
    "load_modules",
    "registered_jobs",
]
