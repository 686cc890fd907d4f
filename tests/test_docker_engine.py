"""Tests for the docker SDK backed engine client."""

from __future__ import annotations

import io
from unittest import mock

import pytest
import requests
from docker.errors import APIError, DockerException

from dc_emulator.common.errors import EngineClientError, EngineError
from dc_emulator.runtime import DockerEngineClient, EngineFailure, wait_for_exit


@pytest.fixture
def api() -> mock.MagicMock:
    return mock.MagicMock()


@pytest.fixture
def client(api):
    engine = DockerEngineClient(api)
    yield engine
    engine.close()


def test_from_env_wraps_connection_errors() -> None:
    with mock.patch("docker.from_env", side_effect=DockerException("socket missing")):
        with pytest.raises(EngineClientError):
            DockerEngineClient.from_env()


def test_list_images_maps_descriptors(client, api) -> None:
    api.images.return_value = [
        {"Id": "sha256:abc", "RepoTags": ["docker-test-python:latest"]},
        {"Id": "sha256:def", "RepoTags": None},
    ]

    images = client.list_images(reference="docker-test-python")

    api.images.assert_called_once_with(filters={"reference": "docker-test-python"})
    assert images[0].repo_tags == ("docker-test-python:latest",)
    assert images[0].short_id == "abc"
    assert images[1].repo_tags == ()


def test_engine_errors_are_translated(client, api) -> None:
    api.start.side_effect = APIError("conflict")

    with pytest.raises(EngineError):
        client.start_container("abc")


def test_request_errors_are_translated(client, api) -> None:
    api.remove_container.side_effect = requests.exceptions.ConnectionError("reset")

    with pytest.raises(EngineError):
        client.remove_container("abc", force=True)


def test_build_streams_raw_chunks(client, api) -> None:
    chunks = [b'{"stream":"Step 1/2"}\r\n', b'{"stream":"Successfully built abc"}\r\n']
    api.build.return_value = iter(chunks)
    context = io.BytesIO(b"tar")

    assert list(client.build_image(context, dockerfile="Dockerfile", tag="app")) == chunks
    kwargs = api.build.call_args.kwargs
    assert kwargs["fileobj"] is context
    assert kwargs["custom_context"] is True
    assert kwargs["dockerfile"] == "Dockerfile"
    assert kwargs["tag"] == "app"


def test_build_error_entry_raises_after_streaming(client, api) -> None:
    api.build.return_value = iter([b'{"stream":"Step 1/2"}\r\n', b'{"error":"COPY failed"}\r\n'])
    seen = []

    with pytest.raises(EngineError, match="COPY failed"):
        for chunk in client.build_image(io.BytesIO(), dockerfile="Dockerfile", tag="app"):
            seen.append(chunk)

    assert len(seen) == 2


def test_create_container_passes_binds_and_environment(client, api) -> None:
    api.create_host_config.return_value = {"Binds": ["/src:/work"]}
    api.create_container.return_value = {"Id": "abc123", "Warnings": []}

    handle = client.create_container(
        name="deploy-dc-emulator",
        image="app:latest",
        environment=["A=1", ""],
        command=("/work/test.py",),
        binds=("/src:/work",),
    )

    assert handle == "abc123"
    api.create_host_config.assert_called_once_with(binds=["/src:/work"])
    api.create_container.assert_called_once_with(
        image="app:latest",
        command=["/work/test.py"],
        environment=["A=1", ""],
        host_config={"Binds": ["/src:/work"]},
        name="deploy-dc-emulator",
    )


def test_wait_completes_status_future(client, api) -> None:
    api.wait.return_value = {"StatusCode": 4}

    status, error = client.wait_container("abc")

    assert status.result(timeout=5) == 4
    assert not error.done()
    api.wait.assert_called_once_with("abc", condition="not-running")


def test_wait_failure_completes_error_future(client, api) -> None:
    api.wait.side_effect = requests.exceptions.ConnectionError("daemon restarted")

    status, error = client.wait_container("abc")

    assert isinstance(wait_for_exit(status, error, timeout=5), EngineFailure)
    assert not status.done()


def test_wait_error_body_completes_error_future(client, api) -> None:
    api.wait.return_value = {"StatusCode": -1, "Error": {"Message": "container vanished"}}

    status, error = client.wait_container("abc")

    assert isinstance(error.exception(timeout=5), EngineError)


def test_fetch_logs_requests_each_stream(client, api) -> None:
    api.logs.side_effect = [b"out\n", b"err\n"]

    frames = client.fetch_logs("abc")

    assert [(frame.stream, frame.data) for frame in frames] == [("stdout", b"out\n"), ("stderr", b"err\n")]
    assert api.logs.call_args_list == [
        mock.call("abc", stdout=True, stderr=False),
        mock.call("abc", stdout=False, stderr=True),
    ]
