"""Registry of named jobs."""

import importlib
import inspect
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .exceptions import JobNotFoundError
from .models import Config
from .runner import Handler, JobRunner
from .storage import Storage

__all__ = ['job', 'get_job', 'registered_jobs', 'load_modules', 'RegisteredJob', 'JobNotFoundError']


@dataclass
class RegisteredJob:
    """A registered job and its per-job overrides."""
    name: str
    handler: Handler
    max_retries: Optional[int] = None
    backoff_ms: Optional[int] = None
    timeout_ms: Optional[int] = None
    description: str = ""

    def resolve(self, config: Config) -> Config:
        """Apply this job's overrides on top of ``config``."""
        overrides = {
            key: value
            for key, value in (
                ("max_retries", self.max_retries),
                ("backoff_ms", self.backoff_ms),
                ("timeout_ms", self.timeout_ms),
            )
            if value is not None
        }
        return config.model_copy(update=overrides)

    def build_runner(self, config: Config, store: Optional[Storage] = None, **overrides) -> JobRunner:
        """
        Build a runner for this job.

        Non-None ``max_retries``/``backoff_ms``/``timeout_ms`` in ``overrides``
        win over the decorator options, which win over ``config``. Other
        keyword arguments go to ``JobRunner``.
        """
        settings = self.resolve(config).model_dump()
        for key in ("max_retries", "backoff_ms", "timeout_ms"):
            value = overrides.pop(key, None)
            if value is not None:
                settings[key] = value
        return JobRunner(self.name, self.handler, store=store, **settings, **overrides)


# Module-level job registry
_registry: Dict[str, RegisteredJob] = {}


def _summary(func) -> str:
    lines = inspect.getdoc(func) or ""
    return lines.splitlines()[0] if lines else ""


def job(
    name: str,
    max_retries: Optional[int] = None,
    backoff_ms: Optional[int] = None,
    timeout_ms: Optional[int] = None,
):
    """Register an async handler under ``name``.

    Example:
        @job("send-email", max_retries=5)
        async def send_email(payload):
            ...
    """
    def decorator(func: Handler) -> Handler:
        _registry[name] = RegisteredJob(
            name=name,
            handler=func,
            max_retries=max_retries,
            backoff_ms=backoff_ms,
            timeout_ms=timeout_ms,
            description=_summary(func),
        )
        return func
    return decorator


def get_job(name: str) -> RegisteredJob:
    """Look up a registered job."""
    if name not in _registry:
        raise JobNotFoundError(name)
    return _registry[name]


def registered_jobs() -> Dict[str, RegisteredJob]:
    """Registered jobs (a copy)."""
    return _registry.copy()


def load_modules(names: Iterable[str]) -> None:
    """Import modules so their ``@job`` decorators run."""
    for name in names:
        importlib.import_module(name)
