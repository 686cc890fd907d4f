"""Create, run, collect output from, and remove a single container."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional

from dc_emulator.common.errors import (
    ContainerCreateError,
    ContainerRemoveError,
    ContainerStartError,
    ContainerWaitError,
    EngineError,
    EnvFileReadError,
    LogRetrievalError,
)
from dc_emulator.common.models import LogFrame, RunSpec

from .engine import WAIT_CONDITION_NOT_RUNNING, EngineClient
from .wait import EngineFailure, wait_for_exit


def read_environment(env_file: str) -> List[str]:
    """
    Return the environment entries of ``env_file``, one per line.

    Lines are passed through verbatim: carriage returns are kept, a trailing
    newline yields a final empty entry and no KEY=VALUE validation is done.
    """
    try:
        content = Path(env_file).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise EnvFileReadError(f"Cannot read environment file {env_file}: {exc}", subject=env_file) from exc
    return content.split("\n")


def copy_log_frames(frames: Iterable[LogFrame], stdout: BinaryIO, stderr: BinaryIO) -> None:
    """Write each frame to the sink of the stream it came from."""
    for frame in frames:
        sink = stderr if frame.stream == "stderr" else stdout
        sink.write(frame.data)
        sink.flush()


class ContainerLifecycleRunner:
    """Drive one container through create -> start -> wait -> logs -> remove.

    Every container this runner creates is removed before ``run`` returns or
    raises.
    """

    def __init__(
        self,
        stdout: BinaryIO,
        stderr: BinaryIO,
        *,
        wait_timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.wait_timeout = wait_timeout
        self.logger = logger or logging.getLogger(__name__)

    def run(self, engine: EngineClient, container_name: str, image_ref: str, spec: RunSpec) -> int:
        """
        Run ``spec.command`` in a fresh container created from ``image_ref``.

        Returns:
            The container's exit status code.

        Raises:
            EnvFileReadError: Before any container exists.
            ContainerCreateError: Before any container exists.
            ContainerStartError, ContainerWaitTimeout, LogRetrievalError: After
                the container has been removed.
            ContainerWaitError: Severe; the engine failed while waiting.
            ContainerRemoveError: If only the final removal failed.
        """
        environment = read_environment(spec.env_file[0]) if spec.env_file else []

        try:
            handle = engine.create_container(
                name=container_name,
                image=image_ref,
                environment=environment,
                command=spec.command,
                binds=spec.volumes,
            )
        except EngineError as exc:
            raise ContainerCreateError(f"Cannot create container {container_name}: {exc}", subject=container_name) from exc
        self.logger.info("Created container %s (%s) from %s", container_name, handle[:12], image_ref)

        try:
            status_code = self._execute(engine, handle, container_name)
        except BaseException:
            self._remove_after_failure(engine, handle, container_name)
            raise

        try:
            engine.remove_container(handle)
        except EngineError as exc:
            raise ContainerRemoveError(f"Cannot remove container {container_name}: {exc}", subject=container_name) from exc
        self.logger.info("Removed container %s", container_name)
        return status_code

    def _execute(self, engine: EngineClient, handle: str, container_name: str) -> int:
        try:
            engine.start_container(handle)
        except EngineError as exc:
            raise ContainerStartError(f"Cannot start container {container_name}: {exc}", subject=container_name) from exc

        self.logger.debug("Waiting for container %s to stop", container_name)
        try:
            status, error = engine.wait_container(handle, WAIT_CONDITION_NOT_RUNNING)
        except EngineError as exc:
            raise ContainerWaitError(f"Cannot wait for container {container_name}: {exc}", subject=container_name) from exc

        outcome = wait_for_exit(status, error, timeout=self.wait_timeout)
        if isinstance(outcome, EngineFailure):
            raise ContainerWaitError(
                f"Engine failed while waiting for container {container_name}: {outcome.error}",
                subject=container_name,
            ) from outcome.error
        self.logger.info("Container %s exited with status %d", container_name, outcome.status_code)

        try:
            frames = engine.fetch_logs(handle, stdout=True, stderr=True)
        except EngineError as exc:
            raise LogRetrievalError(f"Cannot fetch logs of container {container_name}: {exc}", subject=container_name) from exc
        copy_log_frames(frames, self.stdout, self.stderr)
        return outcome.status_code

    def _remove_after_failure(self, engine: EngineClient, handle: str, container_name: str) -> None:
        # The container may still be running after a wait failure or timeout.
        try:
            engine.remove_container(handle, force=True)
        except EngineError as exc:
            self.logger.warning("Failed to remove container %s: %s", container_name, exc)
        else:
            self.logger.info("Removed container %s", container_name)
