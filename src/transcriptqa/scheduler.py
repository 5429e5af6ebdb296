"""Startup-ordered, overlap-safe periodic question generation.

State machine::

    IDLE -> WAITING_FOR_INGESTION -> GENERATING_INITIAL -> PERIODIC_WAIT
         -> GENERATING -> PERIODIC_WAIT -> ... -> STOPPED

Periodic ticks fire on a fixed schedule (initial delay, then a fixed
interval) whether or not the previous tick has finished. A tick that finds
the generation slot taken is skipped, never queued. The slot is a
non-blocking lock shared by every scheduler in the process unless one is
injected, so two instances can never run passes at the same time.
"""

from __future__ import annotations

import asyncio
import threading
from enum import StrEnum

from transcriptqa.core import CompletionSignal, GenerationOutcome, get_logger
from transcriptqa.generation import DEFAULT_SAMPLE_SIZE, QuestionGenerator

logger = get_logger(__name__)

DEFAULT_INITIAL_DELAY_SECONDS = 300.0
DEFAULT_INTERVAL_SECONDS = 86400.0

_PROCESS_GENERATION_SLOT = threading.Lock()


class SchedulerState(StrEnum):
    IDLE = "idle"
    WAITING_FOR_INGESTION = "waiting_for_ingestion"
    GENERATING_INITIAL = "generating_initial"
    PERIODIC_WAIT = "periodic_wait"
    GENERATING = "generating"
    STOPPED = "stopped"


class GenerationScheduler:
    """Runs generation passes after startup ingestion and then periodically.

    Args:
        generator: Performs one generation pass per tick.
        ingestion_signal: Resolved once startup ingestion has finished.
        initial_delay: Seconds between the initial pass and the first tick.
        interval: Seconds between periodic ticks.
        sample_size: Chunks sampled per pass.
        slot: Reentrancy guard; defaults to the process-wide slot.
    """

    def __init__(
        self,
        generator: QuestionGenerator,
        ingestion_signal: CompletionSignal,
        *,
        initial_delay: float = DEFAULT_INITIAL_DELAY_SECONDS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        slot: threading.Lock | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if initial_delay < 0:
            raise ValueError("initial_delay cannot be negative")
        self._generator = generator
        self._ingestion_signal = ingestion_signal
        self.initial_delay = initial_delay
        self.interval = interval
        self.sample_size = sample_size
        self._slot = slot if slot is not None else _PROCESS_GENERATION_SLOT
        self._state = SchedulerState.IDLE
        self._stop_event = asyncio.Event()
        self._loop_task: asyncio.Task[None] | None = None
        self._tick_tasks: set[asyncio.Task[GenerationOutcome | None]] = set()
        self._logger = logger.bind(component="scheduler")

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """Start the scheduler loop on the running event loop."""
        if self._loop_task is not None:
            raise RuntimeError("scheduler has already been started")
        self._loop_task = asyncio.create_task(self._run(), name="transcriptqa-scheduler")

    async def stop(self) -> None:
        """Interrupt any pending wait and end the loop.

        Ticks already in progress are allowed to finish.
        """
        self._stop_event.set()
        if self._loop_task is not None:
            await self._loop_task
        if self._tick_tasks:
            await asyncio.gather(*self._tick_tasks, return_exceptions=True)
        self._state = SchedulerState.STOPPED
        self._logger.info("scheduler_stopped")

    async def tick(self, *, initial: bool = False) -> GenerationOutcome | None:
        """Run one guarded generation pass.

        Returns None when the pass was skipped because another one holds the
        generation slot, or when the pass failed unexpectedly.
        """
        if not self._slot.acquire(blocking=False):
            self._logger.info("scheduler_tick_skipped", reason="generation_in_progress")
            return None
        try:
            self._state = (
                SchedulerState.GENERATING_INITIAL if initial else SchedulerState.GENERATING
            )
            outcome = await self._generator.generate(self.sample_size)
            self._logger.info(
                "scheduler_tick_completed",
                initial=initial,
                success=outcome.success,
                message=outcome.message,
            )
            return outcome
        except Exception as e:
            self._logger.error(
                "scheduler_tick_failed", initial=initial, error=str(e), error_type=type(e).__name__
            )
            return None
        finally:
            self._slot.release()
            if not self._stop_event.is_set():
                self._state = SchedulerState.PERIODIC_WAIT

    async def _wait_for_ingestion(self) -> bool:
        """Block until ingestion finishes; False if stopped first."""
        ingestion = asyncio.ensure_future(self._ingestion_signal.wait())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        done, pending = await asyncio.wait(
            {ingestion, stopped}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        return ingestion in done and not self._stop_event.is_set()

    async def _sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds``; False if stopped during the wait."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            return True
        return False

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.tick())
        self._tick_tasks.add(task)
        task.add_done_callback(self._tick_tasks.discard)

    async def _run(self) -> None:
        self._state = SchedulerState.WAITING_FOR_INGESTION
        self._logger.info("scheduler_waiting_for_ingestion")
        if not await self._wait_for_ingestion():
            return

        self._logger.info("scheduler_initial_generation")
        await self.tick(initial=True)
        if self._stop_event.is_set():
            return

        self._state = SchedulerState.PERIODIC_WAIT
        self._logger.info(
            "scheduler_periodic_started",
            initial_delay=self.initial_delay,
            interval=self.interval,
        )
        delay = self.initial_delay
        while await self._sleep(delay):
            self._spawn_tick()
            delay = self.interval
