"""Exception classes for jobrunner."""


class JobError(Exception):
    """Base error for jobrunner."""
    pass


class JobTimeoutError(JobError, TimeoutError):
    """An attempt did not settle within its timeout."""

    def __init__(self, job_name: str, timeout_ms: int):
        self.job_name = job_name
        self.timeout_ms = timeout_ms
        super().__init__("Job execution timed out")


class JobNotFoundError(JobError):
    """No job is registered under the given name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Job not found: {name}")

