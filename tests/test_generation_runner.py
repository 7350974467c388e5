"""Tests for the generation retry wrapper."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from storyprompts.domain.errors import GenerationError, MalformedGenerationError
from storyprompts.llm.generation import GenerationRunner


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_runner(client, sleep, **kwargs):
    kwargs.setdefault("max_attempts", 3)
    kwargs.setdefault("backoff_seconds", 1.0)
    kwargs.setdefault("timeout_seconds", 5.0)
    kwargs.setdefault("min_length", 10)
    return GenerationRunner(client, sleep=sleep, **kwargs)


@pytest.mark.asyncio
async def test_returns_stripped_text_on_first_success(sleep):
    client = AsyncMock()
    client.generate.return_value = "  What was your first car like?  "

    text = await make_runner(client, sleep).run("system", "user")

    assert text == "What was your first car like?"
    assert client.generate.await_count == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retries_with_linear_backoff(sleep):
    """Test that attempt n waits n * backoff before the next attempt."""
    client = AsyncMock()
    client.generate.side_effect = [
        RuntimeError("boom"),
        RuntimeError("boom again"),
        "Tell me about your grandmother's kitchen.",
    ]

    text = await make_runner(client, sleep).run("system", "user")

    assert text == "Tell me about your grandmother's kitchen."
    assert client.generate.await_count == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_raises_after_all_attempts_fail(sleep):
    client = AsyncMock()
    client.generate.side_effect = RuntimeError("service unavailable")

    with pytest.raises(GenerationError):
        await make_runner(client, sleep).run("system", "user")

    assert client.generate.await_count == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_short_output_counts_as_failure(sleep):
    """Test that too-short output is retried and finally reported as malformed."""
    client = AsyncMock()
    client.generate.return_value = "Hi?"

    with pytest.raises(MalformedGenerationError):
        await make_runner(client, sleep).run("system", "user")

    assert client.generate.await_count == 3


@pytest.mark.asyncio
async def test_empty_output_then_success(sleep):
    client = AsyncMock()
    client.generate.side_effect = ["", "Describe the street you grew up on."]

    text = await make_runner(client, sleep).run("system", "user")

    assert text == "Describe the street you grew up on."
    assert sleep.delays == [1.0]


@pytest.mark.asyncio
async def test_timeout_is_retried(sleep):
    """Test that a hung call is cut off by the timeout and retried."""

    async def slow_then_fast(system_prompt, user_prompt, context=None):
        if not hasattr(slow_then_fast, "called"):
            slow_then_fast.called = True
            await asyncio.sleep(1)
        return "What did your father do for a living?"

    client = AsyncMock()
    client.generate.side_effect = slow_then_fast

    text = await make_runner(client, sleep, timeout_seconds=0.01).run("system", "user")

    assert text == "What did your father do for a living?"
    assert client.generate.await_count == 2
