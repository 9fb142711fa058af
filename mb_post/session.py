from __future__ import annotations

import inspect
from typing import Any, Sequence

from .details import GeneratedPosts, ProductDetails
from .encoder import ImageSource, encode_image, encode_images
from .errors import (
    GENERATION_FAILED_MESSAGE,
    GENERATION_IN_PROGRESS_MESSAGE,
    NO_IMAGE_MESSAGE,
    EncodingError,
    GenerationError,
    InputError,
)
from .orchestrator import PostOrchestrator


async def _release(source: Any) -> None:
    close = getattr(source, "close", None)
    if not callable(close):
        return
    result = close()
    if inspect.isawaitable(result):
        await result


class DraftSession:
    """
    Form state for one user working on one post.

    Mirrors what the front end holds between interactions: the ordered product
    images, an optional logo, the detail fields and the outcome of the last
    generation cycle. Sources with a close() method (uploads, temp files) are
    released when replaced, removed, or when the session closes.
    """

    def __init__(self, orchestrator: PostOrchestrator, *, auto_recognize: bool = True) -> None:
        self._orchestrator = orchestrator
        self._auto_recognize = bool(auto_recognize)
        self._images: list[ImageSource] = []
        self._logo: ImageSource | None = None
        # Bumped whenever the image set is emptied; older recognitions are stale.
        self._image_epoch = 0

        self.product_name = ""
        self.price = ""
        self.target_audience = ""
        self.promotion = ""
        self.style = ""

        self.is_recognizing = False
        self.is_generating = False
        self.result: GeneratedPosts | None = None
        self.error: str | None = None

    async def __aenter__(self) -> "DraftSession":
        return self

    async def __aexit__(self, exc_type: object, exc: object, tb: object) -> None:
        await self.close()

    @property
    def images(self) -> tuple[ImageSource, ...]:
        return tuple(self._images)

    @property
    def logo(self) -> ImageSource | None:
        return self._logo

    @property
    def can_generate(self) -> bool:
        return bool(self._images) and not self.is_generating

    def details(self) -> ProductDetails:
        return ProductDetails(
            product_name=self.product_name,
            price=self.price,
            target_audience=self.target_audience,
            promotion=self.promotion,
            style=self.style,
        )

    async def add_images(self, sources: Sequence[ImageSource]) -> None:
        added = list(sources)
        if not added:
            return

        # Recognition only runs when the set goes from empty to non-empty.
        should_recognize = self._auto_recognize and not self._images

        self._images.extend(added)
        self.result = None
        self.error = None

        if not should_recognize:
            return

        epoch = self._image_epoch
        self.is_recognizing = True
        try:
            first = await encode_image(added[0])
            name = await self._orchestrator.recognize_product([first])
            if epoch == self._image_epoch:
                self.product_name = name
        except EncodingError as e:
            logger = self._orchestrator.logger
            if logger is not None:
                logger.exception("product_recognition_skipped", exc=e, level="WARN")
        finally:
            if epoch == self._image_epoch:
                self.is_recognizing = False

    async def remove_image(self, index: int) -> None:
        removed = self._images.pop(index)
        await _release(removed)

        if not self._images:
            self._image_epoch += 1
            self.product_name = ""
            self.is_recognizing = False

    async def set_logo(self, source: ImageSource) -> None:
        if self._logo is not None and self._logo is not source:
            await _release(self._logo)
        self._logo = source

    async def remove_logo(self) -> None:
        if self._logo is not None:
            await _release(self._logo)
        self._logo = None

    async def submit(self) -> GeneratedPosts:
        if not self._images:
            self.error = NO_IMAGE_MESSAGE
            raise InputError(NO_IMAGE_MESSAGE)

        if self.is_generating:
            raise InputError(GENERATION_IN_PROGRESS_MESSAGE)

        self.is_generating = True
        self.error = None
        self.result = None

        try:
            parts = await encode_images(self._images)
            logo_part = await encode_image(self._logo) if self._logo is not None else None
            posts = await self._orchestrator.generate_all_posts(parts, logo_part, self.details())
        except Exception as e:
            logger = self._orchestrator.logger
            if logger is not None and not isinstance(e, GenerationError):
                logger.exception("draft_submit_failed", exc=e)
            self.error = GENERATION_FAILED_MESSAGE
            if isinstance(e, GenerationError):
                raise
            raise GenerationError(GENERATION_FAILED_MESSAGE) from e
        finally:
            self.is_generating = False

        self.result = posts
        return posts

    async def close(self) -> None:
        sources = list(self._images)
        if self._logo is not None:
            sources.append(self._logo)

        self._images = []
        self._logo = None
        self._image_epoch += 1
        self.is_recognizing = False

        for source in sources:
            await _release(source)
