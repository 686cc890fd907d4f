"""Named run profiles and their loader."""

from __future__ import annotations

import json
import shlex
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dc_emulator.common.models import RunSpec


class ProfileConfigError(ValueError):
    """Raised when the profiles file is missing or malformed."""


class UnknownProfileError(KeyError):
    """Raised when a requested profile is not defined."""


class RunProfile(BaseModel):
    """A named run as written in the profiles file (paths still relative)."""

    build: str = Field(default=".", description="Build context directory.")
    image: str = Field(description="Image name used as the build tag.")
    env_file: List[str] = Field(default_factory=list, description="Environment files; the first one is used.")
    volumes: List[str] = Field(default_factory=list, description="Bind specs in 'host:container' form.")
    command: List[str] = Field(default_factory=list, description="Command executed in the container.")

    @field_validator("image")
    @classmethod
    def _validate_image(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Image name cannot be empty.")
        return value.strip()

    @field_validator("env_file", mode="before")
    @classmethod
    def _single_env_file(cls, value: Union[str, List[str], None]) -> List[str]:
        if value is None:
            return []
        return [value] if isinstance(value, str) else value

    @field_validator("command", mode="before")
    @classmethod
    def _split_command(cls, value: Union[str, List[str], None]) -> List[str]:
        if value is None:
            return []
        return shlex.split(value) if isinstance(value, str) else value

    def to_run_spec(self, workdir: Path) -> RunSpec:
        """Resolve relative paths against ``workdir`` and freeze into a RunSpec."""
        try:
            return RunSpec(
                build=str(resolve_path(self.build, workdir)),
                image=self.image,
                env_file=tuple(str(resolve_path(path, workdir)) for path in self.env_file),
                volumes=tuple(resolve_volume(bind, workdir) for bind in self.volumes),
                command=tuple(self.command),
            )
        except ValidationError as exc:
            raise ProfileConfigError(f"Invalid run profile for image {self.image!r}: {exc}") from exc


class RunProfiles(BaseModel):
    """Container model holding every named run."""

    runs: Dict[str, RunProfile] = Field(default_factory=dict)

    @field_validator("runs")
    @classmethod
    def _validate_runs(cls, runs: Dict[str, RunProfile]) -> Dict[str, RunProfile]:
        if not runs:
            raise ValueError("Profiles file must define at least one run.")
        return runs

    def get(self, name: str) -> RunProfile:
        try:
            return self.runs[name]
        except KeyError:
            available = ", ".join(sorted(self.runs))
            raise UnknownProfileError(f"Unknown run profile '{name}' (available: {available})") from None


def resolve_path(path: str, workdir: Path) -> Path:
    candidate = Path(path).expanduser()
    return candidate if candidate.is_absolute() else workdir / candidate


def resolve_volume(bind: str, workdir: Path) -> str:
    """Prefix a relative host path of a 'host:container[:mode]' bind with ``workdir``."""
    host, separator, rest = bind.partition(":")
    if not separator:
        return bind
    return f"{resolve_path(host, workdir)}:{rest}"


def load_run_profiles(path: Union[str, Path]) -> RunProfiles:
    """Load run profiles from a YAML or JSON file."""
    path = Path(path)
    if not path.exists():
        raise ProfileConfigError(f"Profiles file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        elif suffix == ".json":
            data = json.loads(path.read_text(encoding="utf-8"))
        else:
            raise ProfileConfigError(f"Unsupported profiles file format: {suffix}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ProfileConfigError(f"Cannot parse profiles file {path}: {exc}") from exc

    if data is None:
        raise ProfileConfigError(f"Profiles file {path} is empty.")

    try:
        return RunProfiles.model_validate(data)
    except ValidationError as exc:
        raise ProfileConfigError(f"Invalid profiles file {path}: {exc}") from exc


def load_run_spec(path: Union[str, Path], name: str, workdir: Optional[Path] = None) -> RunSpec:
    """Return the RunSpec of profile ``name`` with paths resolved against ``workdir`` (cwd by default)."""
    profiles = load_run_profiles(path)
    return profiles.get(name).to_run_spec(workdir or Path.cwd())

