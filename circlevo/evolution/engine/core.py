from __future__ import annotations

from collections.abc import Iterable, Mapping
import time
from typing import TYPE_CHECKING, Any

from loguru import logger
import numpy as np

from circlevo.evolution.crossover import CrossoverOperator, build_crossover
from circlevo.evolution.engine.breeding import breed_offspring, mutate_population
from circlevo.evolution.engine.config import RunConfig
from circlevo.evolution.engine.rollback import ComplianceGuard
from circlevo.evolution.engine.state import (
    EngineStatus,
    GenerationResult,
    GenomeState,
    PopulationSnapshot,
    validate_transition,
)
from circlevo.evolution.parent_selector import ParentSelector, build_parent_selector
from circlevo.evolution.selection import fitness_summary, select
from circlevo.exceptions import CirclevoError, EvolutionError
from circlevo.fitness.evaluator import (
    FitnessEvaluator,
    ParallelFitnessEvaluator,
    SyncFitnessEvaluator,
)
from circlevo.fitness.metrics import FitnessMetric, build_metric
from circlevo.genome.chromosome import Chromosome
from circlevo.genome.gene import CircleGene, ScalarGene
from circlevo.rendering.rasterizer import Rasterizer, build_rasterizer
from circlevo.rendering.reference import ReferenceImage

if TYPE_CHECKING:
    from circlevo.runner.observers import ProgressObserver

__all__ = ["EvolutionEngine"]


class EvolutionEngine:
    """
    Generational loop over a fixed array of chromosome slots:
    - each step runs evaluate -> select -> crossover -> mutate;
    - mutation is skipped on the last generation of the budget;
    - an optional compliance guard rolls back regressions.
    The engine never paces itself; callers drive it with step()/astep().
    """

    def __init__(
        self,
        config: RunConfig | Mapping[str, Any],
        reference: ReferenceImage,
        *,
        rasterizer: Rasterizer | None = None,
        evaluator: FitnessEvaluator | None = None,
        fitness_metric: FitnessMetric | None = None,
        compliance_metric: FitnessMetric | None = None,
        crossover: CrossoverOperator | None = None,
        parent_selector: ParentSelector | None = None,
        observers: Iterable[ProgressObserver] = (),
        rng: np.random.Generator | None = None,
    ):
        if not isinstance(config, RunConfig):
            config = RunConfig.parse(config)
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)

        self.rasterizer = rasterizer or build_rasterizer(
            config.rasterizer, config.min_radius, config.max_radius
        )
        self.fitness_metric = fitness_metric or build_metric(config.fitness_metric)
        self.evaluator = evaluator or self._build_evaluator()
        self.crossover = crossover or build_crossover(config.crossover)
        self.parent_selector = parent_selector or build_parent_selector(
            config.parent_selection
        )
        self.guard = ComplianceGuard(
            compliance_metric
            or build_metric(config.compliance_metric, stride=config.compliance_stride),
            self.rasterizer,
            enabled=config.elitist_rollback,
        )
        self.observers: list[ProgressObserver] = list(observers)

        self.reference = reference.resample(*config.compute_size)
        self.ratio = config.ratio
        self.gene_type = CircleGene if config.encoding == "circle" else ScalarGene

        self._population: list[Chromosome] = [
            Chromosome(config.genome_length, self.rng, gene_type=self.gene_type)
            for _ in range(config.population_size)
        ]
        self.state = GenomeState(max_generation=config.max_generation)

        logger.info(
            "[EvolutionEngine] Init | population={}, genome={}x{}, compute={}x{}, "
            "ratio={:.3f}, metric={}, compliance={}, evaluator={}",
            config.population_size,
            config.genome_length,
            self.gene_type.__name__,
            config.compute_width,
            config.compute_height,
            self.ratio,
            type(self.fitness_metric).__name__,
            type(self.guard.metric).__name__,
            type(self.evaluator).__name__,
        )

    def _build_evaluator(self) -> FitnessEvaluator:
        if self.config.evaluation == "parallel":
            return ParallelFitnessEvaluator(
                self.rasterizer,
                self.fitness_metric,
                max_workers=self.config.workers,
                timeout=self.config.evaluation_timeout,
                use_processes=self.config.use_processes,
            )
        return SyncFitnessEvaluator(self.rasterizer, self.fitness_metric)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def population(self) -> tuple[Chromosome, ...]:
        return tuple(self._population)

    @property
    def best_chromosome(self) -> Chromosome:
        return self._population[0]

    @property
    def best_snapshot(self) -> PopulationSnapshot | None:
        return self.guard.best_snapshot

    def is_done(self) -> bool:
        return self.state.generation >= self.state.max_generation

    def render_best(self, width: int | None = None, height: int | None = None) -> np.ndarray:
        """Rasterize the leading chromosome, at display resolution by default."""
        display_w, display_h = self.config.display_size
        width = width or display_w
        height = height or display_h
        return self.rasterizer.rasterize(self.best_chromosome, width, height, width / display_w)

    # ------------------------------------------------------------------
    # Generation protocol
    # ------------------------------------------------------------------

    def step(self) -> GenerationResult:
        """Run exactly one generation on the calling thread."""
        generation, started = self._begin()
        try:
            self.evaluator.evaluate(self._population, self.reference, self.ratio)
            return self._advance(generation, started)
        except CirclevoError:
            self._abort(generation, "failed")
            raise
        except Exception as exc:
            self._abort(generation, "failed")
            raise EvolutionError(f"Generation {generation} failed: {exc}") from exc
        except BaseException:
            self._abort(generation, "interrupted")
            raise

    async def astep(self) -> GenerationResult:
        """Run one generation, awaiting the evaluator's barrier."""
        generation, started = self._begin()
        try:
            await self.evaluator.aevaluate(self._population, self.reference, self.ratio)
            return self._advance(generation, started)
        except CirclevoError:
            self._abort(generation, "failed")
            raise
        except Exception as exc:
            self._abort(generation, "failed")
            raise EvolutionError(f"Generation {generation} failed: {exc}") from exc
        except BaseException:
            self._abort(generation, "interrupted")
            raise

    def run(self) -> GenomeState:
        """Run the remaining budget back to back; a no-op once done."""
        while not self.is_done():
            self.step()
        return self.state

    def generate(self, num_generations: int = 1) -> GenomeState:
        """Run *num_generations* more generations counted from the current one.

        Any unrun part of the previous budget is replaced, so on a fresh engine
        ``generate(G)`` stops at generation ``G``.
        """
        if num_generations <= 0:
            raise ValueError(f"num_generations must be positive, got {num_generations}")
        self.state.max_generation = self.state.generation + num_generations
        return self.run()

    def reset(self) -> None:
        """Re-randomize every slot and return to Idle with the configured budget."""
        for chromosome in self._population:
            chromosome.set_genes(
                [self.gene_type.random(self.rng) for _ in range(len(chromosome))]
            )
        self.guard.reset()
        self.state = GenomeState(max_generation=self.config.max_generation)
        logger.info("[EvolutionEngine] Reset")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(self) -> tuple[int, float]:
        if self.is_done():
            raise EvolutionError(
                f"Generation budget exhausted ({self.state.generation}/{self.state.max_generation}); "
                "call generate() or reset()"
            )
        self._set_status(EngineStatus.RUNNING)
        self.state.generation += 1
        return self.state.generation, time.perf_counter()

    def _abort(self, generation: int, reason: str) -> None:
        # the unfinished generation never happened
        self.state.generation = generation - 1
        self._set_status(EngineStatus.IDLE)
        logger.warning("[EvolutionEngine] Generation {} {}, rolled back to {}", generation, reason, generation - 1)

    def _advance(self, generation: int, started: float) -> GenerationResult:
        cfg = self.config

        selection = select(self._population, cfg.selection_rate)
        self.state.best_fitness = selection.best_fitness
        best, mean, worst = fitness_summary(self._population)

        offspring = breed_offspring(
            selection,
            crossover=self.crossover,
            parent_selector=self.parent_selector,
            rng=self.rng,
        )

        final = generation >= self.state.max_generation
        mutated = 0
        if not final:
            skip = () if cfg.mutate_elites else selection.best
            mutated = mutate_population(
                self._population, cfg.mutation_rate, self.rng, skip=skip
            )

        check = self.guard.check(self._population, self.reference, generation, self.ratio)
        self.state.compliance = check.best_compliance
        if check.rolled_back:
            self.state.rollbacks += 1
        elif self.guard.enabled:
            self.state.best_generation = generation

        result = GenerationResult(
            generation=generation,
            max_generation=self.state.max_generation,
            best_fitness=best,
            mean_fitness=mean,
            worst_fitness=worst,
            compliance=check.compliance,
            best_compliance=check.best_compliance,
            rolled_back=check.rolled_back,
            mutated=mutated,
            offspring=offspring,
            elapsed_time=time.perf_counter() - started,
        )
        logger.debug(
            "[EvolutionEngine] Gen {}/{} | best={:.5f} mean={:.5f} compliance={:.5f}{}",
            generation,
            self.state.max_generation,
            best,
            mean,
            check.compliance,
            " (rolled back)" if check.rolled_back else "",
        )

        if final:
            self._set_status(EngineStatus.DONE)
            logger.info(
                "[EvolutionEngine] Done at generation {} | best_fitness={:.5f} compliance={:.5f}",
                generation,
                self.state.best_fitness,
                self.state.compliance,
            )

        self._notify(result)
        return result

    def _set_status(self, status: EngineStatus) -> None:
        validate_transition(self.state.status, status)
        self.state.status = status

    def _notify(self, result: GenerationResult) -> None:
        for observer in self.observers:
            try:
                observer.on_generation(result, self.state)
            except Exception as exc:
                logger.error(
                    "[EvolutionEngine] Observer {} failed: {}", type(observer).__name__, exc
                )

    def get_status(self) -> dict[str, object]:
        """Light status for UIs and health checks."""
        return {**self.state.to_dict(), "population_size": len(self._population)}

    def close(self) -> None:
        self.evaluator.close()
        for observer in self.observers:
            try:
                observer.close()
            except Exception as exc:
                logger.warning(
                    "[EvolutionEngine] Observer {} close failed: {}", type(observer).__name__, exc
                )

    def __enter__(self) -> EvolutionEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
