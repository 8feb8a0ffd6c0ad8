"""Shared fixtures: scripted completion functions, zero-delay sleep, fixed randomness."""

import logging
import os
import random
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from cursed_reviewer.resilient_invoker import ResilientInvoker, RetryPolicy

_FAKE_REQUEST = httpx.Request("POST", "https://llm.invalid/v1/chat/completions")


def completion_response(text):
    """Minimal OpenAI-style completion response carrying text."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def rate_limit_error():
    return openai.RateLimitError(
        "rate limited", response=httpx.Response(429, request=_FAKE_REQUEST), body=None
    )


def server_error():
    return openai.InternalServerError(
        "upstream exploded", response=httpx.Response(500, request=_FAKE_REQUEST), body=None
    )


def auth_error():
    return openai.AuthenticationError(
        "bad key", response=httpx.Response(401, request=_FAKE_REQUEST), body=None
    )


def _as_side_effect(item):
    if isinstance(item, BaseException):
        return item
    return completion_response(item)


@pytest.fixture
def scripted_completion():
    """
    Factory for an AsyncMock completion function.

    Each scripted item is either a string (returned as a completion) or an
    exception instance (raised). The last item repeats once the script runs out.
    """
    def _make(*items):
        script = [_as_side_effect(i) for i in items]

        def _next(*args, **kwargs):
            item = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(item, BaseException):
                raise item
            return item

        return AsyncMock(side_effect=_next)
    return _make


@pytest.fixture
def no_sleep():
    return AsyncMock(return_value=None)


@pytest.fixture
def make_invoker(scripted_completion, no_sleep):
    """Build a ResilientInvoker over a scripted completion with zero-delay sleep."""
    def _make(*items, max_retries=3, deadline_seconds=5.0):
        completion = scripted_completion(*items)
        invoker = ResilientInvoker(
            completion_fn=completion,
            policy=RetryPolicy(max_retries=max_retries),
            deadline_seconds=deadline_seconds,
            model="test/model",
            sleep=no_sleep,
        )
        return invoker, completion
    return _make


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture(autouse=True)
def clean_reviewer_env(monkeypatch):
    """Keep CURSED_* settings from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("CURSED_") or key == "GITHUB_TOKEN":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def api_errors():
    """Factories for upstream client errors, as raised by the completion function."""
    return SimpleNamespace(rate_limit=rate_limit_error, server=server_error, auth=auth_error)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handler/level changes made by setup_logging (the CLI calls it on every run)."""
    logger = logging.getLogger("cursed_reviewer")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
