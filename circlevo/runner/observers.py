from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
import time
from typing import Any

from loguru import logger
from tensorboardX import SummaryWriter

from circlevo.evolution.engine.state import GenerationResult, GenomeState

__all__ = [
    "CallbackProgressObserver",
    "LoggingProgressObserver",
    "ProgressObserver",
    "TensorBoardProgressObserver",
]


class ProgressObserver(ABC):
    """Receives a report after every generation."""

    @abstractmethod
    def on_generation(self, result: GenerationResult, state: GenomeState) -> None: ...

    def close(self) -> None:
        pass


class LoggingProgressObserver(ProgressObserver):
    """Log a progress line every ``every`` generations and on the final one."""

    def __init__(self, every: int = 10):
        if every <= 0:
            raise ValueError(f"every must be positive, got {every}")
        self.every = every

    def on_generation(self, result: GenerationResult, state: GenomeState) -> None:
        if result.generation % self.every and not result.is_final:
            return
        logger.info(
            "[Progress] Gen {}/{} | fitness best={:.5f} mean={:.5f} | "
            "compliance={:.5f} (best {:.5f}) | rollbacks={} | {:.3f}s",
            result.generation,
            result.max_generation,
            result.best_fitness,
            result.mean_fitness,
            result.compliance,
            result.best_compliance,
            state.rollbacks,
            result.elapsed_time,
        )


class CallbackProgressObserver(ProgressObserver):
    def __init__(self, callback: Callable[[GenerationResult, GenomeState], Any]):
        self.callback = callback

    def on_generation(self, result: GenerationResult, state: GenomeState) -> None:
        self.callback(result, state)


class TensorBoardProgressObserver(ProgressObserver):
    """Write per-generation scalars with tensorboardX.

    The writer is opened lazily on the first report so that constructing the
    observer (e.g. from Hydra config) never touches the filesystem.
    """

    def __init__(
        self,
        logdir: str | Path = "runs/circlevo",
        *,
        prefix: str = "evolution",
        flush_secs: int = 10,
    ):
        self.logdir = Path(logdir)
        self.prefix = prefix
        self.flush_secs = flush_secs
        self._writer: SummaryWriter | None = None

    def _open(self) -> SummaryWriter:
        if self._writer is None:
            logdir = self.logdir.resolve()
            logdir.mkdir(parents=True, exist_ok=True)
            self._writer = SummaryWriter(str(logdir), flush_secs=self.flush_secs)
            logger.info("[TensorBoardProgressObserver] Writing to {}", logdir)
        return self._writer

    def on_generation(self, result: GenerationResult, state: GenomeState) -> None:
        writer = self._open()
        now = time.time()
        scalars = {
            "fitness/best": result.best_fitness,
            "fitness/mean": result.mean_fitness,
            "fitness/worst": result.worst_fitness,
            "compliance/current": result.compliance,
            "compliance/best": result.best_compliance,
            "population/mutated": result.mutated,
            "population/rollbacks": state.rollbacks,
            "timing/generation_seconds": result.elapsed_time,
        }
        for tag, value in scalars.items():
            writer.add_scalar(
                f"{self.prefix}/{tag}", value, global_step=result.generation, walltime=now
            )

    def close(self) -> None:
        if self._writer is None:
            return
        try:
            self._writer.flush()
        finally:
            self._writer.close()
            self._writer = None
