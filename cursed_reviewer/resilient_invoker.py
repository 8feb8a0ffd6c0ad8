"""
cursed_reviewer/resilient_invoker.py

Every call to the generative endpoint goes through ResilientInvoker: one
attempt, sequential retries with exponential backoff for transient failures
(throttling, timeouts, server-side errors), and an overall deadline raced
against the whole retry loop. When the deadline wins, the retry loop is
cancelled so no further attempts are made after the caller has stopped waiting.

The invoker never substitutes output. Falling back is the caller's job.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import litellm
import openai
from pydantic import BaseModel, Field

from . import DEFAULT_DEADLINE_SECONDS, DEFAULT_MODEL
from .errors import DeadlineExceededError, EmptyResponseError

logger = logging.getLogger(__name__)

T = TypeVar("T")
CompletionFn = Callable[..., Awaitable[Any]]
SleepFn = Callable[[float], Awaitable[None]]

# Exception types that always signal a transient condition
RETRYABLE_EXCEPTIONS = (
    openai.RateLimitError,
    openai.APITimeoutError,
    openai.InternalServerError,
    asyncio.TimeoutError,
)

THROTTLING_NAMES = {"ThrottlingException", "TooManyRequestsException"}


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters. The delay before retry n (0-based) is min(initial * multiplier**n, max)."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 5.0
    backoff_multiplier: float = 2.0

    def delay_for(self, retry_count: int) -> float:
        return min(self.initial_delay * (self.backoff_multiplier ** retry_count), self.max_delay)


class GenerationRequest(BaseModel):
    """Request shape for one generative call."""
    prompt: str = Field(..., min_length=1)
    max_output_tokens: int = Field(500, gt=0)
    temperature: float = Field(0.8, ge=0.0, le=2.0)


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "http_status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_retryable(exc: BaseException) -> bool:
    """
    True for throttling, timeout and server-side (5xx) failures.

    Authentication failures, malformed requests and anything else are not
    retryable and must reach the caller untouched.
    """
    if isinstance(exc, RETRYABLE_EXCEPTIONS):
        return True
    if type(exc).__name__ in THROTTLING_NAMES:
        return True
    status = _status_code(exc)
    if status is None:
        return False
    return status == 429 or status >= 500


def _response_text(response: Any) -> Optional[str]:
    """Pull the text out of an OpenAI-style completion response (or a bare string)."""
    if isinstance(response, str):
        return response
    try:
        return response.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError):
        return None


class ResilientInvoker:
    """
    Retrying, deadline-bounded client for a text-generation endpoint.

    Args:
        completion_fn: Async callable with litellm's ``acompletion`` signature.
            Defaults to ``litellm.acompletion``.
        policy: Retry/backoff parameters.
        deadline_seconds: Overall deadline applied by ``invoke`` and ``run_with_deadline``.
        model: Model identifier passed to the completion function.
        sleep: Async sleep used between retries.
    """

    def __init__(
        self,
        completion_fn: Optional[CompletionFn] = None,
        policy: Optional[RetryPolicy] = None,
        deadline_seconds: float = DEFAULT_DEADLINE_SECONDS,
        model: str = DEFAULT_MODEL,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.completion_fn = completion_fn or litellm.acompletion
        self.policy = policy or RetryPolicy()
        self.deadline_seconds = deadline_seconds
        self.model = model
        self._sleep = sleep

    async def invoke_once(self, request: GenerationRequest) -> str:
        """Single attempt, no retry. Raises EmptyResponseError on blank output."""
        response = await self.completion_fn(
            model=self.model,
            messages=[{"role": "user", "content": request.prompt}],
            max_tokens=request.max_output_tokens,
            temperature=request.temperature,
        )
        text = _response_text(response)
        if text is None or not text.strip():
            raise EmptyResponseError("Empty response from generative endpoint", {"model": self.model})
        return text.strip()

    async def invoke_with_retry(self, request: GenerationRequest) -> str:
        """Invoke with sequential retries for transient failures; no deadline."""
        retry_count = 0
        while True:
            try:
                return await self.invoke_once(request)
            except Exception as e:
                if not is_retryable(e) or retry_count >= self.policy.max_retries:
                    raise
                delay = self.policy.delay_for(retry_count)
                retry_count += 1
                logger.warning(
                    f"Generative call failed ({type(e).__name__}: {e}). "
                    f"Retrying in {delay:.2f}s (attempt {retry_count}/{self.policy.max_retries})",
                    extra={"model": self.model, "attempt": retry_count, "delay_seconds": round(delay, 2)},
                )
                await self._sleep(delay)

    async def run_with_deadline(self, awaitable: Awaitable[T], deadline_seconds: Optional[float] = None) -> T:
        """
        Race an awaitable against the deadline timer.

        Whichever settles first wins. If the timer wins, the other branch is
        cancelled and DeadlineExceededError is raised; otherwise its result or
        exception is passed through unchanged.
        """
        timeout = self.deadline_seconds if deadline_seconds is None else deadline_seconds
        task = asyncio.ensure_future(awaitable)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        task.cancel()
        # Let the cancelled branch unwind before reporting the timeout
        await asyncio.gather(task, return_exceptions=True)
        logger.warning(f"Generative call exceeded deadline of {timeout:.1f}s")
        raise DeadlineExceededError(
            f"Deadline of {timeout:.1f}s exceeded", {"model": self.model}
        )

    async def invoke(self, request: GenerationRequest, deadline_seconds: Optional[float] = None) -> str:
        """Invoke with retries, bounded by the overall deadline."""
        return await self.run_with_deadline(self.invoke_with_retry(request), deadline_seconds)
