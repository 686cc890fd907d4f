"""Packaging of a directory tree as a Docker build context archive."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional

from docker.utils import build as build_utils

from dc_emulator.common.errors import BuildContextError

DOCKERFILE_NAME = "Dockerfile"
DOCKERIGNORE_NAME = ".dockerignore"

logger = logging.getLogger(__name__)


def read_dockerignore(context_path: Path) -> Optional[List[str]]:
    """Return the exclusion patterns of the context's .dockerignore, if present."""
    dockerignore = context_path / DOCKERIGNORE_NAME
    if not dockerignore.exists():
        return None
    try:
        lines = dockerignore.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise BuildContextError(f"Cannot read {dockerignore}: {exc}", subject=str(dockerignore)) from exc
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def package_build_context(build_context: str, dockerfile: str = DOCKERFILE_NAME) -> BinaryIO:
    """
    Tar every file under ``build_context`` the way ``docker build`` would.

    Args:
        build_context: Directory holding the Dockerfile and its sources.
        dockerfile: Dockerfile name relative to the context; never excluded.

    Returns:
        A temporary file positioned at the start of the archive. The caller closes it.

    Raises:
        BuildContextError: If the directory is missing or cannot be archived.
    """
    context_path = Path(build_context)
    if not context_path.is_dir():
        raise BuildContextError(
            f"Build context directory not found at {build_context}",
            subject=build_context,
        )

    exclude = read_dockerignore(context_path)
    logger.debug("Packaging build context %s (excludes: %s)", context_path, exclude)
    try:
        return build_utils.tar(str(context_path), exclude=exclude, dockerfile=(dockerfile, None))
    except OSError as exc:
        raise BuildContextError(f"Cannot package build context {build_context}: {exc}", subject=build_context) from exc
