"""Built-in demo jobs, registered on import."""

import asyncio
from collections import Counter

from .registry import job

# Calls per payload["key"]; lives for the process, never reset
_flaky_calls: Counter = Counter()


@job("echo")
async def echo(payload):
    """Return the payload unchanged."""
    return payload


@job("sleep", timeout_ms=60_000)
async def sleep(payload):
    """Sleep for payload["seconds"] (default 1)."""
    seconds = float(payload.get("seconds", 1))
    await asyncio.sleep(seconds)
    return {"slept": seconds}


@job("fail")
async def fail(payload):
    """Always raise RuntimeError(payload["message"])."""
    raise RuntimeError(payload.get("message", "Job failed"))


@job("flaky")
async def flaky(payload):
    """Fail payload["failures"] times per payload["key"], then succeed.

    Call counts are kept per process, so a key only fails on its first
    calls within one interpreter.
    """
    key = payload.get("key", "default")
    _flaky_calls[key] += 1
    calls = _flaky_calls[key]
    if calls <= int(payload.get("failures", 1)):
        raise RuntimeError(f"Flaky failure {calls}")
    return {"calls": calls}
