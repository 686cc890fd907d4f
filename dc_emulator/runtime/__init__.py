"""Runtime pieces for resolving images and running containers."""

from .engine import DockerEngineClient, EngineClient, WAIT_CONDITION_NOT_RUNNING
from .images import ImageResolver
from .issues import IssueSeverity, RunIssue
from .lifecycle import ContainerLifecycleRunner, copy_log_frames, read_environment
from .orchestrator import RunOrchestrator, RunOutcome, container_name
from .wait import ContainerExited, EngineFailure, WaitOutcome, wait_for_exit

__all__ = [
    "DockerEngineClient",
    "EngineClient",
    "WAIT_CONDITION_NOT_RUNNING",
    "ImageResolver",
    "IssueSeverity",
    "RunIssue",
    "ContainerLifecycleRunner",
    "copy_log_frames",
    "read_environment",
    "RunOrchestrator",
    "RunOutcome",
    "container_name",
    "ContainerExited",
    "EngineFailure",
    "WaitOutcome",
    "wait_for_exit",
]
