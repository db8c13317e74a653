"""
Job runner

Runs an async unit of work with a per-attempt timeout, bounded retry with
linear backoff, and a dead-letter handoff once attempts are exhausted.
"""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from .exceptions import JobTimeoutError
from .models import Config, DeadLetter
from .storage import Storage

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]
DeadLetterHook = Callable[[BaseException, Any], Any]


def _discard_outcome(task: asyncio.Future) -> None:
    """Consume the outcome of an attempt that lost the timeout race."""
    if not task.cancelled():
        task.exception()


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


class JobRunner:
    """
    Async job executor.

    The handler is attempted up to ``max_retries + 1`` times. Each attempt
    races the handler against a ``timeout_ms`` timer; the losing handler is
    left running unless ``cancel_on_timeout`` is set. After failed attempt
    ``n`` the runner sleeps ``backoff_ms * n`` before the next one. When no
    attempts remain the failure is dead-lettered (stored and/or handed to
    ``on_dead_letter``) and the last error is re-raised.

    Example:
        runner = JobRunner("send-email", send_email, max_retries=2)
        result = await runner.run({"to": "a@example.com"})
    """

    def __init__(
        self,
        job_name: str,
        handler: Handler,
        max_retries: int = 3,
        backoff_ms: int = 2000,
        timeout_ms: int = 5000,
        on_dead_letter: Optional[DeadLetterHook] = None,
        store: Optional[Storage] = None,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
        cancel_on_timeout: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        config = Config(max_retries=max_retries, backoff_ms=backoff_ms, timeout_ms=timeout_ms)
        self.job_name = job_name
        self.handler = handler
        self.max_retries = config.max_retries
        self.backoff_ms = config.backoff_ms
        self.timeout_ms = config.timeout_ms
        self.on_dead_letter = on_dead_letter
        self.store = store
        self.retry_on = retry_on
        self.cancel_on_timeout = cancel_on_timeout
        self._sleep = sleep

    @classmethod
    def from_config(cls, job_name: str, handler: Handler, config: Config, **kwargs) -> "JobRunner":
        """Build a runner whose retry and timeout settings come from ``config``."""
        return cls(
            job_name,
            handler,
            max_retries=config.max_retries,
            backoff_ms=config.backoff_ms,
            timeout_ms=config.timeout_ms,
            **kwargs,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt`` (1-indexed)."""
        return self.backoff_ms * attempt / 1000

    async def run(self, payload: Any = None) -> Any:
        """
        Run the job.

        Args:
            payload: input handed to the handler on every attempt (default ``{}``)

        Returns:
            The handler's result from the first successful attempt.

        Raises:
            The last attempt's error once attempts are exhausted, or at once
            for an error outside ``retry_on``.
        """
        if payload is None:
            payload = {}

        attempt = 0
        while True:
            attempt += 1
            logger.info(
                f"Job started: job={self.job_name}, attempt={attempt}",
                extra={"job_name": self.job_name, "attempt": attempt},
            )

            try:
                result = await self._run_with_timeout(payload)
            except Exception as e:
                logger.error(
                    f"Job failed: job={self.job_name}, attempt={attempt}, error={_describe(e)}",
                    extra={
                        "job_name": self.job_name,
                        "attempt": attempt,
                        "error": _describe(e),
                        "payload": payload,
                    },
                )
                if attempt > self.max_retries or not isinstance(e, self.retry_on):
                    await self._move_to_dead_letter(e, payload, attempt)
                    raise
                await self._backoff(attempt)
                continue

            logger.info(
                f"Job succeeded: job={self.job_name}, attempt={attempt}",
                extra={"job_name": self.job_name, "attempt": attempt},
            )
            return result

    async def _run_with_timeout(self, payload: Any) -> Any:
        """Race one handler call against the timeout."""
        outcome = self.handler(payload)
        if not inspect.isawaitable(outcome):
            return outcome

        task = asyncio.ensure_future(outcome)
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        if self.cancel_on_timeout:
            task.cancel()
        task.add_done_callback(_discard_outcome)
        raise JobTimeoutError(self.job_name, self.timeout_ms)

    async def _backoff(self, attempt: int) -> None:
        delay_ms = self.backoff_ms * attempt
        logger.info(
            f"Job retry scheduled: job={self.job_name}, retrying in {delay_ms}ms",
            extra={"job_name": self.job_name, "attempt": attempt, "delay_ms": delay_ms},
        )
        await self._sleep(self.backoff_delay(attempt))

    async def _move_to_dead_letter(self, error: BaseException, payload: Any, attempts: int) -> None:
        """Log, persist and hand off a terminal failure."""
        timestamp = datetime.now(timezone.utc)
        logger.error(
            f"Job dead-lettered: job={self.job_name}, reason={_describe(error)}",
            extra={
                "job_name": self.job_name,
                "attempt": attempts,
                "reason": _describe(error),
                "payload": payload,
                "dead_lettered_at": timestamp.isoformat(),
            },
        )

        # Failures below are logged; the job's own error is what the caller sees
        if self.store is not None:
            record = DeadLetter(
                job_name=self.job_name,
                reason=_describe(error),
                error_type=type(error).__name__,
                payload=payload,
                attempts=attempts,
                created_at=timestamp,
            )
            try:
                await asyncio.to_thread(self.store.add_dead_letter, record)
            except Exception:
                logger.exception(f"Failed to store dead letter: job={self.job_name}")

        if self.on_dead_letter is not None:
            try:
                outcome = self.on_dead_letter(error, payload)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception(f"Dead-letter hook failed: job={self.job_name}")
