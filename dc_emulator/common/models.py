"""Shared data models used by the profile loader and the runtime."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_IMAGE_VERSION = "latest"

LogStream = Literal["stdout", "stderr"]


class RunSpec(BaseModel):
    """Declarative description of a single container invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    build_context: str = Field(default=".", alias="build", description="Directory packaged as the build context")
    image: str = Field(description="Image name the build is tagged with (e.g., 'docker-test-python')")
    env_file: Tuple[str, ...] = Field(default=(), description="Environment files; only the first one is read")
    volumes: Tuple[str, ...] = Field(default=(), description="Bind specs in 'host:container' form")
    command: Tuple[str, ...] = Field(default=(), description="Command executed in the container")

    @field_validator("image")
    @classmethod
    def _validate_image(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Image name cannot be empty.")
        return value.strip()

    @property
    def image_tag(self) -> str:
        return image_tag(self.image)


def image_tag(image: str) -> str:
    """
    Return the tag used to look the image up in the engine.

    A registry prefix such as 'localhost:5000/' is not a tag, so only the last
    path component is inspected.
    """
    last_component = image.rsplit("/", 1)[-1]
    if ":" in last_component or "@" in last_component:
        return image
    return f"{image}:{DEFAULT_IMAGE_VERSION}"


@dataclass(slots=True)
class ImageDescriptor:
    """Image entry as reported by the engine's image listing."""

    id: str
    repo_tags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def short_id(self) -> str:
        return self.id.removeprefix("sha256:")


@dataclass(slots=True)
class ResolvedImage:
    """Image reference a container can be created from."""

    reference: str
    built: bool = False
    image_id: Optional[str] = None


@dataclass(slots=True)
class LogFrame:
    """A chunk of container output attributed to one stream."""

    stream: LogStream
    data: bytes
