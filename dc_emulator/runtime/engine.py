"""Container engine capability and its Docker SDK implementation."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, Optional, Protocol, Sequence, Tuple

import docker
import requests
from docker.errors import DockerException

from dc_emulator.common.errors import EngineClientError, EngineError
from dc_emulator.common.models import ImageDescriptor, LogFrame

WAIT_CONDITION_NOT_RUNNING = "not-running"


class EngineClient(Protocol):
    """Calls the runtime makes against a container engine.

    Implementations raise :class:`EngineError` for every failed call.
    """

    def list_images(self, reference: Optional[str] = None) -> List[ImageDescriptor]:
        ...

    def build_image(self, context: BinaryIO, *, dockerfile: str, tag: str) -> Iterator[bytes]:
        ...

    def create_container(
        self,
        *,
        name: str,
        image: str,
        environment: Sequence[str],
        command: Sequence[str],
        binds: Sequence[str],
    ) -> str:
        ...

    def start_container(self, handle: str) -> None:
        ...

    def wait_container(self, handle: str, condition: str = WAIT_CONDITION_NOT_RUNNING) -> Tuple[Future, Future]:
        """Return ``(status, error)`` futures; exactly one of them completes."""
        ...

    def fetch_logs(self, handle: str, *, stdout: bool = True, stderr: bool = True) -> List[LogFrame]:
        ...

    def remove_container(self, handle: str, *, force: bool = False) -> None:
        ...

    def close(self) -> None:
        ...


class DockerEngineClient:
    """EngineClient backed by the low-level docker SDK API client."""

    def __init__(self, api: docker.APIClient, logger: Optional[logging.Logger] = None) -> None:
        self.api = api
        self.logger = logger or logging.getLogger(__name__)
        self._wait_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="engine-wait")

    @classmethod
    def from_env(cls, logger: Optional[logging.Logger] = None) -> "DockerEngineClient":
        """Connect using DOCKER_HOST and friends, negotiating the API version."""
        try:
            client = docker.from_env()
        except DockerException as exc:
            raise EngineClientError(f"Cannot connect to the Docker engine: {exc}") from exc
        return cls(client.api, logger=logger)

    @contextmanager
    def _engine_call(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (DockerException, requests.exceptions.RequestException) as exc:
            raise EngineError(operation, str(exc)) from exc

    def list_images(self, reference: Optional[str] = None) -> List[ImageDescriptor]:
        filters = {"reference": reference} if reference else None
        with self._engine_call("image list"):
            images = self.api.images(filters=filters)
        return [
            ImageDescriptor(id=item.get("Id", ""), repo_tags=tuple(item.get("RepoTags") or ()))
            for item in images
        ]

    def build_image(self, context: BinaryIO, *, dockerfile: str, tag: str) -> Iterator[bytes]:
        """Submit a tar build context and yield the raw build log chunks."""
        with self._engine_call("image build"):
            stream = self.api.build(
                fileobj=context,
                custom_context=True,
                dockerfile=dockerfile,
                tag=tag,
                rm=True,
                decode=False,
            )
            for chunk in stream:
                yield chunk
                error = _build_stream_error(chunk)
                if error:
                    raise EngineError("image build", error)

    def create_container(
        self,
        *,
        name: str,
        image: str,
        environment: Sequence[str],
        command: Sequence[str],
        binds: Sequence[str],
    ) -> str:
        with self._engine_call("container create"):
            host_config = self.api.create_host_config(binds=list(binds))
            response = self.api.create_container(
                image=image,
                command=list(command) or None,
                environment=list(environment),
                host_config=host_config,
                name=name,
            )
        for warning in response.get("Warnings") or ():
            self.logger.warning("Engine warning for container %s: %s", name, warning)
        return response["Id"]

    def start_container(self, handle: str) -> None:
        with self._engine_call("container start"):
            self.api.start(handle)

    def wait_container(self, handle: str, condition: str = WAIT_CONDITION_NOT_RUNNING) -> Tuple[Future, Future]:
        status: Future = Future()
        error: Future = Future()

        def _wait() -> None:
            try:
                with self._engine_call("container wait"):
                    result = self.api.wait(handle, condition=condition)
            except EngineError as exc:
                error.set_exception(exc)
                return
            failure = (result.get("Error") or {}).get("Message")
            if failure:
                error.set_exception(EngineError("container wait", failure))
                return
            status.set_result(int(result.get("StatusCode", 0)))

        self._wait_executor.submit(_wait)
        return status, error

    def fetch_logs(self, handle: str, *, stdout: bool = True, stderr: bool = True) -> List[LogFrame]:
        """Fetch each requested stream separately so the output stays demultiplexed.

        All stdout frames precede all stderr frames; the order in which the
        container interleaved the two streams is not preserved.
        """
        frames: List[LogFrame] = []
        with self._engine_call("container logs"):
            if stdout:
                frames.append(LogFrame("stdout", self.api.logs(handle, stdout=True, stderr=False)))
            if stderr:
                frames.append(LogFrame("stderr", self.api.logs(handle, stdout=False, stderr=True)))
        return frames

    def remove_container(self, handle: str, *, force: bool = False) -> None:
        with self._engine_call("container remove"):
            self.api.remove_container(handle, force=force)

    def close(self) -> None:
        self._wait_executor.shutdown(wait=False, cancel_futures=True)
        self.api.close()


def _build_stream_error(chunk: bytes) -> Optional[str]:
    """Return the error message carried by a build log chunk, if any."""
    for line in chunk.splitlines():
        try:
            payload = json.loads(line)
        except ValueError:
            continue
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"]).strip()
    return None
