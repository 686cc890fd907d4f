"""Top-level orchestration of one emulated run."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Optional

from dc_emulator.common.errors import RunError
from dc_emulator.common.models import RunSpec

from .engine import DockerEngineClient, EngineClient
from .images import ImageResolver
from .issues import RunIssue
from .lifecycle import ContainerLifecycleRunner

DEFAULT_CONTAINER_SUFFIX = "dc-emulator"

EngineFactory = Callable[[], EngineClient]


def container_name(run_name: str, suffix: str = DEFAULT_CONTAINER_SUFFIX) -> str:
    """Derive a Docker-safe container name from the run's logical name."""
    token = "".join(ch if ch.isalnum() or ch in ("-", "_", ".") else "-" for ch in run_name.strip())
    token = "-".join(filter(None, token.split("-"))).lstrip("._") or "run"
    return f"{token}-{suffix}" if suffix else token


@dataclass
class RunOutcome:
    """Errors collected across one run, attributed to the step that raised them."""

    name: str
    client: Optional[RunError] = None
    image_check: Optional[RunError] = None
    build_context: Optional[RunError] = None
    build: Optional[RunError] = None
    image_lookup: Optional[RunError] = None
    env_file: Optional[RunError] = None
    create: Optional[RunError] = None
    start: Optional[RunError] = None
    wait: Optional[RunError] = None
    logs: Optional[RunError] = None
    removal: Optional[RunError] = None
    image: Optional[str] = None
    container_name: Optional[str] = None
    exit_code: Optional[int] = None

    STEPS = (
        "client",
        "image_check",
        "build_context",
        "build",
        "image_lookup",
        "env_file",
        "create",
        "start",
        "wait",
        "logs",
        "removal",
    )

    def record(self, error: RunError) -> None:
        if error.step not in self.STEPS:
            raise ValueError(f"Unknown run step: {error.step}")
        setattr(self, error.step, error)

    def errors(self) -> List[RunError]:
        """Return collected errors in step order."""
        return [getattr(self, step) for step in self.STEPS if getattr(self, step) is not None]

    @property
    def success(self) -> bool:
        return not self.errors()

    @property
    def severe(self) -> bool:
        return any(error.is_severe for error in self.errors())

    def issues(self) -> List[RunIssue]:
        return [RunIssue.from_error(error) for error in self.errors()]

    def summary(self) -> str:
        lines = [f"Run '{self.name}' failed with {len(self.errors())} error(s):"]
        lines.extend(f"  {issue.format()}" for issue in self.issues())
        return "\n".join(lines)


class RunOrchestrator:
    """Resolve the image for a RunSpec and run it in a throwaway container.

    Failures never propagate out of :meth:`run_spec`; they are collected in
    the returned :class:`RunOutcome` and reported once.
    """

    def __init__(
        self,
        engine_factory: EngineFactory = DockerEngineClient.from_env,
        *,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
        wait_timeout: Optional[float] = None,
        container_suffix: str = DEFAULT_CONTAINER_SUFFIX,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.engine_factory = engine_factory
        self.stdout = stdout or sys.stdout.buffer
        self.stderr = stderr or sys.stderr.buffer
        self.wait_timeout = wait_timeout
        self.container_suffix = container_suffix
        self.logger = logger or logging.getLogger(__name__)

    def run_spec(self, name: str, spec: RunSpec) -> RunOutcome:
        outcome = RunOutcome(name=name)
        try:
            engine = self.engine_factory()
        except RunError as exc:
            outcome.record(exc)
            self._report(outcome)
            return outcome

        try:
            self._run_with_engine(engine, name, spec, outcome)
        finally:
            engine.close()
        self._report(outcome)
        return outcome

    def _run_with_engine(self, engine: EngineClient, name: str, spec: RunSpec, outcome: RunOutcome) -> None:
        resolver = ImageResolver(engine, self.stdout, logger=self.logger)
        try:
            resolved = resolver.resolve(spec)
        except RunError as exc:
            outcome.record(exc)
            return
        outcome.image = resolved.reference

        outcome.container_name = container_name(name, self.container_suffix)
        runner = ContainerLifecycleRunner(
            self.stdout,
            self.stderr,
            wait_timeout=self.wait_timeout,
            logger=self.logger,
        )
        try:
            outcome.exit_code = runner.run(engine, outcome.container_name, resolved.reference, spec)
        except RunError as exc:
            outcome.record(exc)

    def _report(self, outcome: RunOutcome) -> None:
        if outcome.success:
            self.logger.info("Run '%s' finished with exit code %s", outcome.name, outcome.exit_code)
            return
        if outcome.severe:
            self.logger.critical(outcome.summary())
        else:
            self.logger.error(outcome.summary())
