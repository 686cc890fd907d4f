"""Error taxonomy for a single emulated run."""
from __future__ import annotations

from typing import Literal, Optional

ErrorSeverity = Literal["fatal", "error"]


class EngineError(Exception):
    """Raised by engine clients when a call against the container engine fails."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class RunError(Exception):
    """Base class for failures of a run step.

    ``step`` names the field of :class:`~dc_emulator.runtime.orchestrator.RunOutcome`
    the error is recorded under and ``code`` is used in reports.
    """

    step = "run"
    code = "RUN_FAILED"
    severity: ErrorSeverity = "error"

    def __init__(self, message: str, *, subject: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.subject = subject

    @property
    def is_severe(self) -> bool:
        return self.severity == "fatal"


class EngineClientError(RunError):
    step = "client"
    code = "ENGINE_CLIENT_UNAVAILABLE"


class ImageLookupError(RunError):
    step = "image_check"
    code = "IMAGE_LIST_FAILED"


class PostBuildLookupError(ImageLookupError):
    step = "image_lookup"
    code = "IMAGE_LOOKUP_FAILED"


class ImageNotFoundAfterBuild(PostBuildLookupError):
    code = "IMAGE_NOT_FOUND_AFTER_BUILD"


class BuildContextError(RunError):
    step = "build_context"
    code = "BUILD_CONTEXT_INVALID"


class ImageBuildError(RunError):
    step = "build"
    code = "IMAGE_BUILD_FAILED"


class EnvFileReadError(RunError):
    step = "env_file"
    code = "ENV_FILE_UNREADABLE"


class ContainerCreateError(RunError):
    step = "create"
    code = "CONTAINER_CREATE_FAILED"


class ContainerStartError(RunError):
    step = "start"
    code = "CONTAINER_START_FAILED"


class ContainerWaitError(RunError):
    """The engine reported an error while the container was being waited on.

    This leaves the engine's view of the container unknown, so it is severe.
    """

    step = "wait"
    code = "CONTAINER_WAIT_FAILED"
    severity: ErrorSeverity = "fatal"


class ContainerWaitTimeout(RunError):
    step = "wait"
    code = "CONTAINER_WAIT_TIMEOUT"


class LogRetrievalError(RunError):
    step = "logs"
    code = "CONTAINER_LOGS_FAILED"


class ContainerRemoveError(RunError):
    step = "removal"
    code = "CONTAINER_REMOVE_FAILED"
