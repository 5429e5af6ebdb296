"""Tests for the one-shot completion signal."""

import asyncio

import pytest

from transcriptqa.core.signals import CompletionSignal


class TestCompletionSignal:
    def test_first_set_resolves(self):
        signal = CompletionSignal()
        assert not signal.is_set()
        assert signal.set() is True
        assert signal.is_set()

    def test_second_set_is_a_noop(self):
        signal = CompletionSignal()
        signal.set()
        assert signal.set() is False
        assert signal.is_set()

    @pytest.mark.asyncio
    async def test_wait_releases_all_waiters(self):
        signal = CompletionSignal()
        waiters = [asyncio.create_task(signal.wait()) for _ in range(3)]
        await asyncio.sleep(0)
        assert not any(w.done() for w in waiters)

        signal.set()
        await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)

    @pytest.mark.asyncio
    async def test_wait_after_resolution_returns_immediately(self):
        signal = CompletionSignal()
        signal.set()
        await asyncio.wait_for(signal.wait(), timeout=1)
