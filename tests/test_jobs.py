"""Tests for retroforge.jobs: non-blocking job tracking."""

from __future__ import annotations

import asyncio

import pytest

from retroforge.jobs import Job, JobKind, JobOrchestrator, JobState


async def _value(value: int, gate: asyncio.Event | None = None) -> int:
    if gate is not None:
        await gate.wait()
    return value


async def _boom() -> None:
    raise RuntimeError("boom")


class TestSubmit:
    @pytest.mark.asyncio
    async def test_returns_without_blocking(self) -> None:
        orchestrator = JobOrchestrator()
        gate = asyncio.Event()
        job = orchestrator.submit(_value(1, gate), name="slow", kind=JobKind.GENERATE)

        assert isinstance(job, Job)
        assert job.state is JobState.PENDING
        assert orchestrator.is_busy()
        assert orchestrator.running_jobs == [job]

        gate.set()
        await orchestrator.wait_idle()
        assert job.state is JobState.COMPLETED
        assert job.result == 1
        assert job.done
        assert not orchestrator.is_busy()

    @pytest.mark.asyncio
    async def test_running_state(self) -> None:
        orchestrator = JobOrchestrator()
        gate = asyncio.Event()
        job = orchestrator.submit(_value(1, gate), name="slow")
        await asyncio.sleep(0)
        assert job.state is JobState.RUNNING
        gate.set()
        await orchestrator.wait_idle()

    @pytest.mark.asyncio
    async def test_busy_until_all_finish(self) -> None:
        orchestrator = JobOrchestrator()
        first_gate, second_gate = asyncio.Event(), asyncio.Event()
        first = orchestrator.submit(_value(1, first_gate), name="first")
        second = orchestrator.submit(_value(2, second_gate), name="second")

        first_gate.set()
        await first.task
        assert orchestrator.is_busy()
        assert orchestrator.running_jobs == [second]

        second_gate.set()
        await orchestrator.wait_idle()
        assert not orchestrator.is_busy()

    def test_submit_requires_running_loop(self) -> None:
        orchestrator = JobOrchestrator()
        coro = _value(1)
        with pytest.raises(RuntimeError):
            orchestrator.submit(coro, name="orphan")
        coro.close()


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_recorded_not_raised(self) -> None:
        orchestrator = JobOrchestrator()
        job = orchestrator.submit(_boom(), name="bad")
        await orchestrator.wait_idle()

        assert job.state is JobState.FAILED
        assert isinstance(job.error, RuntimeError)
        assert job.result is None
        assert not orchestrator.is_busy()

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_siblings(self) -> None:
        orchestrator = JobOrchestrator()
        bad = orchestrator.submit(_boom(), name="bad")
        good = orchestrator.submit(_value(5), name="good")
        await orchestrator.wait_idle()
        assert bad.state is JobState.FAILED
        assert good.state is JobState.COMPLETED


class TestEvents:
    @pytest.mark.asyncio
    async def test_poll_events_drains(self) -> None:
        orchestrator = JobOrchestrator()
        ok = orchestrator.submit(_value(1), name="ok")
        bad = orchestrator.submit(_boom(), name="bad")
        await orchestrator.wait_idle()

        events = orchestrator.poll_events()
        states = {event.job.name: event.state for event in events}
        assert states == {"ok": JobState.COMPLETED, "bad": JobState.FAILED}
        assert {event.job for event in events} == {ok, bad}
        assert orchestrator.poll_events() == []

    @pytest.mark.asyncio
    async def test_no_events_while_running(self) -> None:
        orchestrator = JobOrchestrator()
        gate = asyncio.Event()
        orchestrator.submit(_value(1, gate), name="slow")
        assert orchestrator.poll_events() == []
        gate.set()
        await orchestrator.wait_idle()
        assert len(orchestrator.poll_events()) == 1
