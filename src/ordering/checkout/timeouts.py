"""Time limits for calls that leave the process.

Catalog reads, stock decrements and notification sends run on a worker
thread and are abandoned after ``[custom.checkout] step_timeout_seconds``.
An abandoned call surfaces as ``StepTimeout`` for its step. The worker runs
in a copy of the caller's context so bound log fields carry over.
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import structlog

from ordering.errors import StepTimeout

logger = structlog.get_logger(__name__)

DEFAULT_STEP_TIMEOUT = 5.0
DEFAULT_MAX_TASK_ATTEMPTS = 3

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="checkout-step")


def checkout_settings(domain=None) -> dict:
    """The ``[custom.checkout]`` table of the domain configuration."""
    if domain is None:
        from protean.utils.globals import current_domain

        domain = current_domain

    custom = domain.config.get("custom") or {}
    return custom.get("checkout") or {}


def step_timeout(domain=None) -> float:
    return float(checkout_settings(domain).get("step_timeout_seconds", DEFAULT_STEP_TIMEOUT))


def max_task_attempts(domain=None) -> int:
    return int(checkout_settings(domain).get("max_task_attempts", DEFAULT_MAX_TASK_ATTEMPTS))


def bounded(step: str, fn, *args, timeout: float | None = None, **kwargs):
    """Call ``fn`` and wait at most ``timeout`` seconds for it.

    A missing or non-positive timeout calls ``fn`` inline.
    """
    if not timeout or timeout <= 0:
        return fn(*args, **kwargs)

    ctx = contextvars.copy_context()
    future = _executor.submit(ctx.run, fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        future.cancel()
        logger.warning("Checkout step timed out", step=step, timeout=timeout)
        raise StepTimeout(step, timeout)
