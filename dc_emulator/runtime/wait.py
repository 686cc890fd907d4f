"""Race between the status and error notifications of a container wait."""

from __future__ import annotations

import queue
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from dc_emulator.common.errors import ContainerWaitTimeout


@dataclass(slots=True)
class ContainerExited:
    status_code: int


@dataclass(slots=True)
class EngineFailure:
    error: BaseException


WaitOutcome = Union[ContainerExited, EngineFailure]


def wait_for_exit(status: Future, error: Future, timeout: Optional[float] = None) -> WaitOutcome:
    """
    Block until the first of the two notifications fires and return it.

    Only the first notification is consumed. When both futures are already
    done, the status notification wins.

    Raises:
        ContainerWaitTimeout: If neither fires within ``timeout`` seconds.
    """
    notifications: "queue.Queue[Tuple[str, Future]]" = queue.Queue()
    status.add_done_callback(lambda future: notifications.put(("status", future)))
    error.add_done_callback(lambda future: notifications.put(("error", future)))

    try:
        source, future = notifications.get(timeout=timeout)
    except queue.Empty:
        raise ContainerWaitTimeout(f"Container did not stop within {timeout}s") from None

    if future.cancelled():
        return EngineFailure(error=CancelledError(f"{source} notification was cancelled"))
    if source == "status":
        return ContainerExited(status_code=future.result())

    failure = future.exception()
    if failure is None:
        return EngineFailure(error=RuntimeError("engine signalled a wait error without details"))
    return EngineFailure(error=failure)
