from circlevo.runner.driver import LoopDriver
from circlevo.runner.observers import (
    CallbackProgressObserver,
    LoggingProgressObserver,
    ProgressObserver,
    TensorBoardProgressObserver,
)

__all__ = [
    "CallbackProgressObserver",
    "LoggingProgressObserver",
    "LoopDriver",
    "ProgressObserver",
    "TensorBoardProgressObserver",
]
