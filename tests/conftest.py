"""Shared fixtures: a recording fake container engine and byte sinks."""

from __future__ import annotations

import io
from concurrent.futures import Future
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, List, Optional, Sequence, Tuple

import pytest

from dc_emulator.common.errors import EngineError
from dc_emulator.common.models import ImageDescriptor, LogFrame, RunSpec


class FakeEngine:
    """In-memory EngineClient that records every call it receives."""

    def __init__(self, images: Optional[Dict[str, Sequence[str]]] = None) -> None:
        self.images: Dict[str, Tuple[str, ...]] = {
            image_id: tuple(tags) for image_id, tags in (images or {}).items()
        }
        self.calls: List[Tuple[str, object]] = []
        self.build_output: List[bytes] = [b'{"stream":"Step 1/2 : FROM python:3.12-slim\\n"}\r\n']
        self.build_adds_image = True
        self.logs: List[LogFrame] = [LogFrame("stdout", b"hello\n"), LogFrame("stderr", b"oops\n")]
        self.exit_code = 0
        self.wait_signal = "status"
        self.fail: Dict[str, Exception] = {}
        self.closed = False
        self.created: List[str] = []
        self._next_id = 0

    def _check(self, operation: str) -> None:
        if operation in self.fail:
            raise self.fail[operation]

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def list_images(self, reference: Optional[str] = None) -> List[ImageDescriptor]:
        self.calls.append(("list_images", reference))
        self._check("list_images" if reference is None else "lookup_images")
        descriptors = [ImageDescriptor(id=image_id, repo_tags=tags) for image_id, tags in self.images.items()]
        if reference is None:
            return descriptors
        wanted = reference if ":" in reference else f"{reference}:latest"
        return [image for image in descriptors if wanted in image.repo_tags]

    def build_image(self, context: BinaryIO, *, dockerfile: str, tag: str) -> Iterator[bytes]:
        self.calls.append(("build_image", {"dockerfile": dockerfile, "tag": tag, "context": context.read()}))
        self._check("build_image")
        yield from self.build_output
        if self.build_adds_image:
            full_tag = tag if ":" in tag else f"{tag}:latest"
            self.images[f"sha256:{len(self.images):064d}"] = (full_tag,)

    def create_container(self, *, name, image, environment, command, binds) -> str:
        self.calls.append(
            (
                "create_container",
                {
                    "name": name,
                    "image": image,
                    "environment": list(environment),
                    "command": list(command),
                    "binds": list(binds),
                },
            )
        )
        self._check("create_container")
        self._next_id += 1
        handle = f"{self._next_id:064x}"
        self.created.append(handle)
        return handle

    def start_container(self, handle: str) -> None:
        self.calls.append(("start_container", handle))
        self._check("start_container")

    def wait_container(self, handle: str, condition: str = "not-running") -> Tuple[Future, Future]:
        self.calls.append(("wait_container", condition))
        self._check("wait_container")
        status: Future = Future()
        error: Future = Future()
        if self.wait_signal == "status":
            status.set_result(self.exit_code)
        elif self.wait_signal == "error":
            error.set_exception(EngineError("container wait", "engine lost track of the container"))
        elif self.wait_signal == "both":
            status.set_result(self.exit_code)
            error.set_exception(EngineError("container wait", "late error"))
        return status, error

    def fetch_logs(self, handle: str, *, stdout: bool = True, stderr: bool = True) -> List[LogFrame]:
        self.calls.append(("fetch_logs", {"stdout": stdout, "stderr": stderr}))
        self._check("fetch_logs")
        return list(self.logs)

    def remove_container(self, handle: str, *, force: bool = False) -> None:
        self.calls.append(("remove_container", {"handle": handle, "force": force}))
        self._check("remove_container")

    def close(self) -> None:
        self.closed = True

    def removed(self) -> List[str]:
        return [args["handle"] for name, args in self.calls if name == "remove_container"]


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def sinks() -> Tuple[io.BytesIO, io.BytesIO]:
    return io.BytesIO(), io.BytesIO()


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    context = tmp_path / "context"
    context.mkdir()
    (context / "Dockerfile").write_text("FROM python:3.12-slim\nCOPY . /work\n")
    (context / "test.py").write_text("print('hello')\n")
    return context


@pytest.fixture
def run_spec(tmp_path: Path, build_dir: Path) -> RunSpec:
    env_file = tmp_path / ".env"
    env_file.write_text("A=1\nB=2\n")
    return RunSpec(
        build=str(build_dir),
        image="docker-test-python",
        env_file=(str(env_file),),
        volumes=(f"{tmp_path}/src:/work",),
        command=("/work/test.py",),
    )
