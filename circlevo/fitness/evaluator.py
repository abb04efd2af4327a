"""Population-wide fitness evaluation.

Two interchangeable strategies share one contract: after ``evaluate`` returns,
every chromosome carries a fitness measured against the given reference.
The parallel strategy never hands back a partially evaluated population; it
either reaches the full barrier or raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Sequence
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from functools import partial
import os

from loguru import logger
import numpy as np

from circlevo.exceptions import ConcurrencyTimeoutError, WorkerPoolError
from circlevo.fitness.metrics import FitnessMetric
from circlevo.genome.chromosome import Chromosome
from circlevo.genome.gene import CircleGene, ScalarGene
from circlevo.rendering.rasterizer import Rasterizer
from circlevo.rendering.reference import ReferenceImage

__all__ = [
    "EvaluationJob",
    "FitnessEvaluator",
    "ParallelFitnessEvaluator",
    "SyncFitnessEvaluator",
    "run_evaluation_job",
]


@dataclass(frozen=True)
class EvaluationJob:
    """Self-contained, picklable unit of work for one chromosome."""

    index: int
    genes: np.ndarray
    reference: np.ndarray
    width: int
    height: int
    ratio: float


def run_evaluation_job(
    job: EvaluationJob,
    rasterizer: Rasterizer,
    metric: FitnessMetric,
    gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
) -> float:
    chromosome = Chromosome(len(job.genes), gene_type=gene_type, genes=job.genes)
    rendered = rasterizer.rasterize(chromosome, job.width, job.height, job.ratio)
    return metric.score(rendered, job.reference)

class FitnessEvaluator(ABC):
    """Scores a population against a reference.

    Scoring works on :class:`EvaluationJob` snapshots taken before any work is
    dispatched, and fitness is written back only after every score is known.
    An interrupted evaluation therefore leaves the population untouched.
    """

    def __init__(self, rasterizer: Rasterizer, metric: FitnessMetric):
        self.rasterizer = rasterizer
        self.metric = metric

    @staticmethod
    def build_jobs(
        chromosomes: Sequence[Chromosome],
        reference: ReferenceImage,
        ratio: float = 1.0,
    ) -> list[EvaluationJob]:
        return [
            EvaluationJob(
                index=i,
                genes=chromosome.genes_array(),
                reference=reference.pixels,
                width=reference.width,
                height=reference.height,
                ratio=ratio,
            )
            for i, chromosome in enumerate(chromosomes)
        ]

    @abstractmethod
    def score(
        self,
        jobs: Sequence[EvaluationJob],
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
    ) -> list[float]:
        """Return one score per job, in job order, without touching chromosomes."""

    async def ascore(
        self,
        jobs: Sequence[EvaluationJob],
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
    ) -> list[float]:
        return await asyncio.to_thread(self.score, jobs, gene_type)

    def evaluate(
        self,
        chromosomes: Sequence[Chromosome],
        reference: ReferenceImage,
        ratio: float = 1.0,
    ) -> list[float]:
        """Assign and return the fitness of every chromosome, in order."""
        if not chromosomes:
            return []
        jobs = self.build_jobs(chromosomes, reference, ratio)
        return self._assign(chromosomes, self.score(jobs, chromosomes[0].gene_type))

    async def aevaluate(
        self,
        chromosomes: Sequence[Chromosome],
        reference: ReferenceImage,
        ratio: float = 1.0,
    ) -> list[float]:
        if not chromosomes:
            return []
        jobs = self.build_jobs(chromosomes, reference, ratio)
        scores = await self.ascore(jobs, chromosomes[0].gene_type)
        return self._assign(chromosomes, scores)

    @staticmethod
    def _assign(chromosomes: Sequence[Chromosome], scores: Sequence[float]) -> list[float]:
        return [c.assign_fitness(s) for c, s in zip(chromosomes, scores)]

    def close(self) -> None:
        pass


class SyncFitnessEvaluator(FitnessEvaluator):
    """Evaluates chromosomes one at a time on the calling thread."""

    def score(
        self,
        jobs: Sequence[EvaluationJob],
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
    ) -> list[float]:
        return [
            run_evaluation_job(job, self.rasterizer, self.metric, gene_type)
            for job in jobs
        ]


class ParallelFitnessEvaluator(FitnessEvaluator):
    """Dispatches one rasterize+compare job per chromosome to a worker pool.

    Results are collected by index once every job has finished. A job that
    does not finish within ``timeout`` seconds fails the whole evaluation with
    :class:`ConcurrencyTimeoutError`; a job that raises fails it with
    :class:`WorkerPoolError`.
    """

    def __init__(
        self,
        rasterizer: Rasterizer,
        metric: FitnessMetric,
        *,
        max_workers: int | None = None,
        timeout: float | None = None,
        use_processes: bool = False,
    ):
        super().__init__(rasterizer, metric)
        self.max_workers = max_workers or max(2, os.cpu_count() or 2)
        self.timeout = timeout
        self.use_processes = use_processes
        self._executor: Executor | None = None
        self._stalled = False

    # ------------------------------------------------------------------
    # Executor management
    # ------------------------------------------------------------------

    def _get_executor(self) -> Executor:
        if self._executor is None:
            if self.use_processes:
                self._executor = ProcessPoolExecutor(max_workers=self.max_workers)
            else:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="circlevo-fitness",
                )
            logger.debug(
                "[ParallelFitnessEvaluator] Created {} with {} workers",
                type(self._executor).__name__,
                self.max_workers,
            )
        return self._executor

    def close(self) -> None:
        """Shut the pool down; after a timeout, abandon the stuck jobs."""
        executor, self._executor = self._executor, None
        if executor is None:
            return
        if not self._stalled:
            executor.shutdown(wait=True, cancel_futures=True)
            return

        logger.warning("[ParallelFitnessEvaluator] Abandoning stalled fitness jobs")
        if isinstance(executor, ProcessPoolExecutor):
            # no public way to stop running workers
            for proc in list((executor._processes or {}).values()):
                proc.kill()
        executor.shutdown(wait=False, cancel_futures=True)
        self._stalled = False

    def _timed_out(self, pending: int, total: int) -> ConcurrencyTimeoutError:
        self._stalled = True
        return ConcurrencyTimeoutError(
            f"{pending}/{total} fitness jobs did not finish within {self.timeout}s"
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _work(self, gene_type):
        return partial(
            run_evaluation_job,
            rasterizer=self.rasterizer,
            metric=self.metric,
            gene_type=gene_type,
        )

    def score(
        self,
        jobs: Sequence[EvaluationJob],
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
    ) -> list[float]:
        if not jobs:
            return []
        executor = self._get_executor()
        work = self._work(gene_type)
        futures = [executor.submit(work, job) for job in jobs]

        _, not_done = wait(futures, timeout=self.timeout)
        if not_done:
            for future in not_done:
                future.cancel()
            raise self._timed_out(len(not_done), len(futures))

        scores: list[float] = []
        for job, future in zip(jobs, futures):
            try:
                scores.append(future.result())
            except Exception as exc:
                raise WorkerPoolError(f"Fitness job {job.index} failed: {exc}") from exc
        return scores

    async def ascore(
        self,
        jobs: Sequence[EvaluationJob],
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
    ) -> list[float]:
        if not jobs:
            return []
        loop = asyncio.get_running_loop()
        executor = self._get_executor()
        work = self._work(gene_type)
        tasks = [loop.run_in_executor(executor, work, job) for job in jobs]
        try:
            return list(await asyncio.wait_for(asyncio.gather(*tasks), timeout=self.timeout))
        except asyncio.TimeoutError as exc:
            pending = sum(1 for t in tasks if t.cancelled() or not t.done())
            raise self._timed_out(pending, len(tasks)) from exc
        except Exception as exc:
            raise WorkerPoolError(f"Fitness job failed: {exc}") from exc
