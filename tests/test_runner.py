import asyncio

import pytest

from circlevo.evolution.engine import EvolutionEngine
from circlevo.exceptions import WorkerPoolError
from circlevo.fitness import FitnessEvaluator
from circlevo.runner import (
    CallbackProgressObserver,
    LoggingProgressObserver,
    LoopDriver,
    TensorBoardProgressObserver,
)


class FlakyEvaluator(FitnessEvaluator):
    def __init__(self):
        pass

    def score(self, jobs, gene_type=None):
        raise WorkerPoolError("pool lost")


def test_run_until_done_invokes_callback_per_generation(small_config, gradient_reference):
    generations = []
    engine = EvolutionEngine(small_config, gradient_reference)
    driver = LoopDriver(engine, callback=lambda result: generations.append(result.generation))
    state = driver.run_until_done()
    assert state.generation == small_config.max_generation
    assert generations == [1, 2, 3, 4]
    # a finished run issues no further ticks
    driver.run_until_done()
    assert generations == [1, 2, 3, 4]


def test_async_driver_runs_to_completion(small_config, gradient_reference):
    generations = []
    engine = EvolutionEngine(small_config, gradient_reference)
    driver = LoopDriver(
        engine, tick_interval=0.0, callback=lambda result: generations.append(result.generation)
    )

    async def drive():
        driver.start()
        return await driver.task

    state = asyncio.run(drive())
    assert state.generation == small_config.max_generation
    assert generations == [1, 2, 3, 4]
    assert not driver.is_running()


def test_paused_driver_issues_no_ticks_until_stopped(small_config, gradient_reference):
    engine = EvolutionEngine(small_config, gradient_reference)
    driver = LoopDriver(engine, tick_interval=0.0)

    async def drive():
        driver.pause()
        driver.start()
        await asyncio.sleep(0.05)
        assert driver.is_paused()
        await driver.stop()

    asyncio.run(drive())
    assert engine.state.generation == 0


def test_resume_continues_the_run(small_config, gradient_reference):
    engine = EvolutionEngine(small_config, gradient_reference)
    driver = LoopDriver(engine, tick_interval=0.0)

    async def drive():
        driver.pause()
        driver.start()
        await asyncio.sleep(0.01)
        driver.resume()
        return await driver.task

    state = asyncio.run(drive())
    assert state.generation == small_config.max_generation


def test_stop_withholds_further_ticks(small_config, gradient_reference):
    config = small_config.model_copy(update={"max_generation": 1000})
    engine = EvolutionEngine(config, gradient_reference)
    driver = LoopDriver(engine, tick_interval=0.01)

    async def drive():
        driver.start()
        await asyncio.sleep(0.05)
        await driver.stop()

    asyncio.run(drive())
    stopped_at = engine.state.generation
    assert stopped_at < config.max_generation
    assert driver.task is None


def test_driver_records_pool_failure(small_config, gradient_reference):
    engine = EvolutionEngine(small_config, gradient_reference, evaluator=FlakyEvaluator())
    driver = LoopDriver(engine, tick_interval=0.0)

    async def drive():
        driver.start()
        with pytest.raises(WorkerPoolError):
            await driver.task

    asyncio.run(drive())
    assert isinstance(driver.error, WorkerPoolError)
    assert engine.state.generation == 0


def test_negative_tick_interval_is_rejected(small_config, gradient_reference):
    with pytest.raises(ValueError):
        LoopDriver(EvolutionEngine(small_config, gradient_reference), tick_interval=-1)


def test_logging_observer_validates_interval():
    with pytest.raises(ValueError):
        LoggingProgressObserver(every=0)


def test_logging_observer_runs_with_engine(small_config, gradient_reference):
    engine = EvolutionEngine(
        small_config, gradient_reference, observers=[LoggingProgressObserver(every=2)]
    )
    assert engine.run().generation == small_config.max_generation


def test_tensorboard_observer_writes_event_files(tmp_path, small_config, gradient_reference):
    observer = TensorBoardProgressObserver(tmp_path / "tb")
    engine = EvolutionEngine(small_config, gradient_reference, observers=[observer])
    engine.run()
    engine.close()
    files = list((tmp_path / "tb").iterdir())
    assert any(f.name.startswith("events.out.tfevents") for f in files)


def test_callback_observer_sees_state(small_config, gradient_reference):
    seen = []
    observer = CallbackProgressObserver(lambda result, state: seen.append(state.generation))
    engine = EvolutionEngine(small_config, gradient_reference, observers=[observer])
    engine.run()
    assert seen == [1, 2, 3, 4]


def test_stop_after_failed_run_records_error(small_config, gradient_reference):
    engine = EvolutionEngine(small_config, gradient_reference, evaluator=FlakyEvaluator())
    driver = LoopDriver(engine, tick_interval=0.0)

    async def drive():
        driver.start()
        await asyncio.sleep(0.05)
        await driver.stop()

    asyncio.run(drive())
    assert driver.task is None
    assert isinstance(driver.error, WorkerPoolError)
