"""Image resolution: reuse an existing tag or build it from the context."""

from __future__ import annotations

import logging
from typing import BinaryIO, Optional

from dc_emulator.common.errors import (
    EngineError,
    ImageBuildError,
    ImageLookupError,
    ImageNotFoundAfterBuild,
    PostBuildLookupError,
)
from dc_emulator.common.models import ResolvedImage, RunSpec, image_tag

from .build_context import DOCKERFILE_NAME, package_build_context
from .engine import EngineClient


class ImageResolver:
    """Make sure the image a run needs exists in the engine.

    Only existence gates a rebuild: a tag that is already present is reused
    even when the build context has changed since it was built.
    """

    def __init__(self, engine: EngineClient, stdout: BinaryIO, logger: Optional[logging.Logger] = None) -> None:
        self.engine = engine
        self.stdout = stdout
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, spec: RunSpec) -> ResolvedImage:
        """
        Return the image reference containers for ``spec`` should be created from.

        Raises:
            ImageLookupError: If the engine's image list cannot be read.
            BuildContextError: If the build context cannot be packaged.
            ImageBuildError: If the build fails.
            PostBuildLookupError: If the built image cannot be found afterwards.
        """
        tag = image_tag(spec.image)
        if self.image_exists(tag):
            self.logger.info("Image %s already exists, skipping build", tag)
            return ResolvedImage(reference=tag)

        self.logger.info("Image %s not found, building from %s", tag, spec.build_context)
        self._build(spec)
        image_id = self._lookup_built_image(spec.image)
        self.logger.info("Built image %s (%s)", spec.image, image_id[:12])
        return ResolvedImage(reference=image_id, built=True, image_id=image_id)

    def image_exists(self, tag: str) -> bool:
        try:
            images = self.engine.list_images()
        except EngineError as exc:
            raise ImageLookupError(f"Cannot list images: {exc}", subject=tag) from exc
        return any(tag in image.repo_tags for image in images)

    def _build(self, spec: RunSpec) -> None:
        context = package_build_context(spec.build_context, DOCKERFILE_NAME)
        try:
            for chunk in self.engine.build_image(context, dockerfile=DOCKERFILE_NAME, tag=spec.image):
                self.stdout.write(chunk)
                self.stdout.flush()
        except EngineError as exc:
            self.logger.error("Build of %s failed: %s", spec.image, exc)
            raise ImageBuildError(f"Image build failed: {exc}", subject=spec.image) from exc
        finally:
            context.close()

    def _lookup_built_image(self, image: str) -> str:
        try:
            images = self.engine.list_images(reference=image)
        except EngineError as exc:
            raise PostBuildLookupError(f"Cannot look up built image: {exc}", subject=image) from exc
        if not images:
            raise ImageNotFoundAfterBuild(f"No image matching {image} found after build", subject=image)
        return images[0].short_id
