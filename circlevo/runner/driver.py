"""Pacing for :class:`EvolutionEngine`.

The engine only knows how to run one generation. ``LoopDriver`` decides when
the next one happens: back to back on the caller's thread, or as a background
asyncio task that yields to the event loop between ticks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib

from loguru import logger

from circlevo.evolution.engine import EvolutionEngine, GenerationResult, GenomeState

__all__ = ["LoopDriver"]

DEFAULT_TICK_INTERVAL = 1 / 60


class LoopDriver:
    """Manage the lifecycle of a single :class:`EvolutionEngine` run."""

    def __init__(
        self,
        engine: EvolutionEngine,
        *,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        callback: Callable[[GenerationResult], None] | None = None,
    ) -> None:
        if tick_interval < 0:
            raise ValueError(f"tick_interval must be >= 0, got {tick_interval}")
        self._engine = engine
        self._tick_interval = tick_interval
        self._callback = callback
        self._task: asyncio.Task | None = None
        self._running = False
        self._paused = False
        self._resume: asyncio.Event | None = None
        self._error: BaseException | None = None

    # ------------------------------------------------------------------
    # Immediate pacing
    # ------------------------------------------------------------------

    def run_until_done(self) -> GenomeState:
        """Run the remaining budget back to back on the calling thread."""
        while not self._engine.is_done():
            self._tick(self._engine.step())
        return self._engine.state

    # ------------------------------------------------------------------
    # Async pacing
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Launch the tick loop in the background (idempotent)."""
        if self._task and not self._task.done():
            return
        self._running = True
        self._error = None
        self._resume = asyncio.Event()
        if not self._paused:
            self._resume.set()
        self._task = asyncio.create_task(self._run(), name="circlevo-driver")
        logger.info("[LoopDriver] Started (tick_interval={:.4f}s)", self._tick_interval)

    async def stop(self) -> None:
        """Withhold further ticks and wait for the in-flight generation."""
        self._running = False
        if self._resume is not None:
            self._resume.set()
        if self._task:
            try:
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            except Exception as exc:
                # already logged by the run loop; exposed through ``error``
                self._error = self._error or exc
            finally:
                self._task = None
            logger.info(
                "[LoopDriver] Stopped at generation {}", self._engine.state.generation
            )

    def pause(self) -> None:
        self._paused = True
        if self._resume is not None:
            self._resume.clear()
        logger.info("[LoopDriver] Paused")

    def resume(self) -> None:
        self._paused = False
        if self._resume is not None:
            self._resume.set()
        logger.info("[LoopDriver] Resumed")

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def is_paused(self) -> bool:
        return self._paused

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    @property
    def error(self) -> BaseException | None:
        """Exception that ended the last async run, if any."""
        return self._error

    @property
    def engine(self) -> EvolutionEngine:
        return self._engine

    async def _run(self) -> GenomeState:
        try:
            while self._running and not self._engine.is_done():
                await self._resume.wait()
                if not self._running:
                    break
                self._tick(await self._engine.astep())
                await asyncio.sleep(self._tick_interval)
        except Exception as exc:
            self._error = exc
            logger.error("[LoopDriver] Run failed: {}", exc)
            raise
        finally:
            self._running = False
        return self._engine.state

    def _tick(self, result: GenerationResult) -> None:
        if self._callback is not None:
            self._callback(result)
