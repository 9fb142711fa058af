from __future__ import annotations

import asyncio
import time
import uuid
from typing import Any, Protocol, Sequence

from .details import GeneratedPosts, ProductDetails
from .encoder import EncodedImagePart
from .errors import GENERATION_FAILED_MESSAGE, NO_IMAGE_MESSAGE, GenerationError, InputError
from .llm_schema import Captions
from .run_log import RunLogger


class PostBackend(Protocol):
    async def recognize_product(
        self, images: Sequence[EncodedImagePart], *, cycle_id: str | None = None
    ) -> str: ...

    async def generate_captions(
        self,
        images: Sequence[EncodedImagePart],
        details: ProductDetails,
        *,
        cycle_id: str | None = None,
    ) -> Captions: ...

    async def generate_visual_post(
        self,
        images: Sequence[EncodedImagePart],
        logo: EncodedImagePart | None,
        details: ProductDetails,
        *,
        cycle_id: str | None = None,
    ) -> str | None: ...


def _new_cycle_id() -> str:
    return uuid.uuid4().hex


class PostOrchestrator:
    """
    Runs one generation cycle: captions and visual post in parallel.

    The outcome is binary. Captions decide success; the visual post is
    optional and its failure only shows up as visual_post_url=None.
    """

    def __init__(
        self,
        backend: PostBackend,
        *,
        logger: RunLogger | None = None,
        config_hash: str | None = None,
    ) -> None:
        self._backend = backend
        self._logger = logger
        self._config_hash = config_hash

    @property
    def logger(self) -> RunLogger | None:
        return self._logger

    def _info(self, event: str, *, cycle_id: str, **data: Any) -> None:
        if self._logger is not None:
            self._logger.info(event, cycle_id=cycle_id, **data)

    async def recognize_product(self, images: Sequence[EncodedImagePart]) -> str:
        """Best-effort product name from the first image; "" when unknown."""
        if not images:
            return ""
        cycle_id = _new_cycle_id()
        try:
            name = await self._backend.recognize_product(images[:1], cycle_id=cycle_id)
        except Exception as e:
            if self._logger is not None:
                self._logger.exception(
                    "product_recognition_failed", exc=e, cycle_id=cycle_id, level="WARN"
                )
            return ""
        return (name or "").strip()

    async def generate_all_posts(
        self,
        images: Sequence[EncodedImagePart],
        logo: EncodedImagePart | None,
        details: ProductDetails,
    ) -> GeneratedPosts:
        if not images:
            raise InputError(NO_IMAGE_MESSAGE)

        cycle_id = _new_cycle_id()
        started = time.monotonic()
        self._info(
            "generation_cycle_started",
            cycle_id=cycle_id,
            image_count=len(images),
            has_logo=logo is not None,
            config_sha256=self._config_hash,
        )

        # return_exceptions keeps gather waiting for both calls even when
        # captions fail first.
        captions_result, visual_result = await asyncio.gather(
            self._backend.generate_captions(images, details, cycle_id=cycle_id),
            self._backend.generate_visual_post(images, logo, details, cycle_id=cycle_id),
            return_exceptions=True,
        )

        if isinstance(captions_result, BaseException):
            if self._logger is not None:
                self._logger.exception(
                    "generation_cycle_failed",
                    exc=captions_result,
                    cycle_id=cycle_id,
                    elapsed_seconds=round(time.monotonic() - started, 3),
                )
            raise GenerationError(GENERATION_FAILED_MESSAGE) from captions_result

        visual_post_url: str | None
        if isinstance(visual_result, BaseException):
            if self._logger is not None:
                self._logger.exception(
                    "visual_post_failed", exc=visual_result, cycle_id=cycle_id, level="WARN"
                )
            visual_post_url = None
        else:
            visual_post_url = visual_result

        posts = GeneratedPosts(
            instagram=captions_result.instagram,
            facebook=captions_result.facebook,
            twitter=captions_result.twitter,
            visual_post_url=visual_post_url,
        )

        self._info(
            "generation_cycle_completed",
            cycle_id=cycle_id,
            has_visual=visual_post_url is not None,
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        return posts
