import asyncio
from datetime import datetime, timezone
import time

from dotenv import load_dotenv
import hydra
from hydra.utils import instantiate, to_absolute_path
from loguru import logger
from omegaconf import DictConfig, OmegaConf

from circlevo.evolution.engine import EvolutionEngine, RunConfig
from circlevo.rendering.reference import load_reference, save_rendering
from circlevo.runner.driver import LoopDriver
from circlevo.utils.logger_setup import setup_logger
from circlevo.utils.serve import serve_until_signal


def build_engine(cfg: DictConfig) -> EvolutionEngine:
    reference = load_reference(to_absolute_path(cfg.image))
    run_options = OmegaConf.to_container(cfg.run, resolve=True)
    # display size follows the reference unless set explicitly
    run_options["display_width"] = run_options.get("display_width") or reference.width
    run_options["display_height"] = run_options.get("display_height") or reference.height
    config = RunConfig.parse(run_options)

    observers = [
        instantiate(observer_cfg)
        for observer_cfg in (cfg.get("observers") or {}).values()
        if observer_cfg is not None
    ]
    return EvolutionEngine(config, reference, observers=observers)


async def run_experiment(cfg: DictConfig) -> None:
    start_time = time.time()
    logger.info("Starting circlevo run")
    logger.info("Image: {}", cfg.image)
    logger.info("Start time: {}", datetime.now(timezone.utc).isoformat())

    engine = build_engine(cfg)
    driver = LoopDriver(engine, tick_interval=cfg.tick_interval)
    try:
        logger.info("Configuration:")
        for key, value in engine.config.model_dump().items():
            logger.info("  - {}: {}", key, value)

        driver.start()
        await serve_until_signal(stop_coros=(driver.stop(),), on_stop=(driver.task,))
        if driver.error is not None:
            raise driver.error

        output = save_rendering(engine.render_best(), to_absolute_path(cfg.output))
        logger.info(
            "Finished at generation {}/{} | best_fitness={:.5f} compliance={:.5f} | {}",
            engine.state.generation,
            engine.state.max_generation,
            engine.state.best_fitness,
            engine.state.compliance,
            output,
        )
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Run failed: {}", e)
        raise
    finally:
        engine.close()
        duration = time.time() - start_time
        logger.info("Total run duration: {:.2f} seconds", duration)


@hydra.main(version_base=None, config_path="config", config_name="config")
def main(cfg: DictConfig) -> None:
    """Main entrypoint with Hydra configuration management."""
    load_dotenv()

    log_file_path = setup_logger(
        log_dir=cfg.logging.log_dir,
        level=cfg.logging.level,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    logger.info(
        "Working directory: {}", hydra.core.hydra_config.HydraConfig.get().runtime.output_dir
    )
    logger.info("Log file: {}", log_file_path)
    asyncio.run(run_experiment(cfg))


if __name__ == "__main__":
    main()
