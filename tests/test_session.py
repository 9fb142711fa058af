from __future__ import annotations

import asyncio
import unittest
from typing import Any, Sequence

from mb_post.details import GeneratedPosts, ProductDetails
from mb_post.encoder import EncodedImagePart
from mb_post.errors import (
    GENERATION_FAILED_MESSAGE,
    NO_IMAGE_MESSAGE,
    GenerationError,
    InputError,
)
from mb_post.session import DraftSession


class _FakeUpload:
    def __init__(self, data: bytes, filename: str = "photo.png", content_type: str = "image/png") -> None:
        self._data = data
        self._pos = 0
        self.filename = filename
        self.content_type = content_type
        self.closed = False

    async def seek(self, offset: int) -> None:
        self._pos = offset

    async def read(self, size: int = -1) -> bytes:
        chunk = self._data[self._pos :]
        self._pos += len(chunk)
        return chunk

    async def close(self) -> None:
        self.closed = True


class _FakeOrchestrator:
    def __init__(self, *, names: list[str] | None = None, fail: bool = False) -> None:
        self._names = list(names or ["Recognized"])
        self._fail = fail
        self.logger = None
        self.recognized_with: list[list[EncodedImagePart]] = []
        self.generated_with: list[tuple[list[EncodedImagePart], EncodedImagePart | None, ProductDetails]] = []

    async def recognize_product(self, images: Sequence[EncodedImagePart]) -> str:
        self.recognized_with.append(list(images))
        return self._names.pop(0) if self._names else ""

    async def generate_all_posts(
        self,
        images: Sequence[EncodedImagePart],
        logo: EncodedImagePart | None,
        details: ProductDetails,
    ) -> GeneratedPosts:
        self.generated_with.append((list(images), logo, details))
        if self._fail:
            raise GenerationError()
        return GeneratedPosts(instagram="ig", facebook="fb", twitter="tw", visual_post_url=None)


class _GatedOrchestrator(_FakeOrchestrator):
    """The first recognition blocks until `release` is set."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(names=names)
        self.first_started = asyncio.Event()
        self.release = asyncio.Event()
        self._gated = True

    async def recognize_product(self, images: Sequence[EncodedImagePart]) -> str:
        name = await super().recognize_product(images)
        if self._gated:
            self._gated = False
            self.first_started.set()
            await self.release.wait()
        return name


def _session(orchestrator: Any, **kwargs: Any) -> DraftSession:
    return DraftSession(orchestrator, **kwargs)


class TestRecognitionTrigger(unittest.IsolatedAsyncioTestCase):
    async def test_first_addition_recognizes_first_new_image(self) -> None:
        orch = _FakeOrchestrator(names=["Tênis X"])
        draft = _session(orch)

        await draft.add_images([_FakeUpload(b"first"), _FakeUpload(b"second")])

        self.assertEqual(draft.product_name, "Tênis X")
        self.assertEqual(len(orch.recognized_with), 1)
        self.assertEqual(orch.recognized_with[0][0].raw_bytes(), b"first")
        self.assertFalse(draft.is_recognizing)

    async def test_appending_more_images_does_not_retrigger(self) -> None:
        orch = _FakeOrchestrator(names=["A", "B"])
        draft = _session(orch)

        await draft.add_images([_FakeUpload(b"one")])
        draft.product_name = "Edited by user"
        await draft.add_images([_FakeUpload(b"two")])

        self.assertEqual(len(orch.recognized_with), 1)
        self.assertEqual(draft.product_name, "Edited by user")

    async def test_emptying_the_set_resets_name_and_retriggers(self) -> None:
        orch = _FakeOrchestrator(names=["A", "B"])
        draft = _session(orch)

        first = _FakeUpload(b"one")
        await draft.add_images([first])
        await draft.remove_image(0)

        self.assertEqual(draft.product_name, "")
        self.assertTrue(first.closed)

        await draft.add_images([_FakeUpload(b"other")])
        self.assertEqual(draft.product_name, "B")
        self.assertEqual(len(orch.recognized_with), 2)

    async def test_late_result_for_removed_image_is_discarded(self) -> None:
        orch = _GatedOrchestrator(names=["Removed Product A", "Product B"])
        draft = _session(orch)

        pending = asyncio.create_task(draft.add_images([_FakeUpload(b"a")]))
        await asyncio.wait_for(orch.first_started.wait(), timeout=1.0)

        await draft.remove_image(0)
        await draft.add_images([_FakeUpload(b"b")])
        self.assertEqual(draft.product_name, "Product B")

        orch.release.set()
        await asyncio.wait_for(pending, timeout=1.0)

        self.assertEqual(draft.product_name, "Product B")
        self.assertFalse(draft.is_recognizing)
        self.assertEqual(len(orch.recognized_with), 2)

    async def test_unreadable_first_image_leaves_name_untouched(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch)
        draft.product_name = "kept"

        await draft.add_images([_FakeUpload(b"", content_type="image/png")])

        self.assertEqual(draft.product_name, "kept")
        self.assertEqual(orch.recognized_with, [])
        self.assertEqual(len(draft.images), 1)

    async def test_auto_recognize_can_be_disabled(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch, auto_recognize=False)
        await draft.add_images([_FakeUpload(b"one")])
        self.assertEqual(orch.recognized_with, [])

    async def test_empty_addition_is_ignored(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch)
        await draft.add_images([])
        self.assertEqual(orch.recognized_with, [])
        self.assertFalse(draft.can_generate)


class TestSubmit(unittest.IsolatedAsyncioTestCase):
    async def test_submit_without_images(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch)

        with self.assertRaises(InputError) as ctx:
            await draft.submit()

        self.assertEqual(str(ctx.exception), NO_IMAGE_MESSAGE)
        self.assertEqual(draft.error, NO_IMAGE_MESSAGE)
        self.assertEqual(orch.generated_with, [])

    async def test_submit_builds_fresh_details_and_encodes_logo_last(self) -> None:
        orch = _FakeOrchestrator(names=["Tênis X"])
        draft = _session(orch)

        await draft.add_images([_FakeUpload(b"one"), _FakeUpload(b"two")])
        await draft.set_logo(_FakeUpload(b"logo"))
        draft.price = "199,90"
        draft.style = "minimalista"

        posts = await draft.submit()

        self.assertEqual(draft.result, posts)
        self.assertIsNone(draft.error)
        images, logo, details = orch.generated_with[0]
        self.assertEqual([p.raw_bytes() for p in images], [b"one", b"two"])
        self.assertIsNotNone(logo)
        assert logo is not None
        self.assertEqual(logo.raw_bytes(), b"logo")
        self.assertEqual(details, ProductDetails(product_name="Tênis X", price="199,90", style="minimalista"))

    async def test_failure_sets_generic_error_and_clears_previous_result(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch)
        await draft.add_images([_FakeUpload(b"one")])
        await draft.submit()
        self.assertIsNotNone(draft.result)

        orch._fail = True
        with self.assertRaises(GenerationError):
            await draft.submit()

        self.assertIsNone(draft.result)
        self.assertEqual(draft.error, GENERATION_FAILED_MESSAGE)
        self.assertFalse(draft.is_generating)
        self.assertTrue(draft.can_generate)

    async def test_encoding_failure_is_reported_generically(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch, auto_recognize=False)
        await draft.add_images([_FakeUpload(b"", content_type="image/png")])

        with self.assertRaises(GenerationError) as ctx:
            await draft.submit()

        self.assertEqual(str(ctx.exception), GENERATION_FAILED_MESSAGE)
        self.assertEqual(orch.generated_with, [])

    async def test_adding_images_clears_previous_result(self) -> None:
        orch = _FakeOrchestrator()
        draft = _session(orch)
        await draft.add_images([_FakeUpload(b"one")])
        await draft.submit()

        await draft.add_images([_FakeUpload(b"two")])
        self.assertIsNone(draft.result)


class TestResources(unittest.IsolatedAsyncioTestCase):
    async def test_replacing_and_removing_logo_releases_it(self) -> None:
        draft = _session(_FakeOrchestrator())
        old, new = _FakeUpload(b"old"), _FakeUpload(b"new")

        await draft.set_logo(old)
        await draft.set_logo(new)
        self.assertTrue(old.closed)
        self.assertFalse(new.closed)

        await draft.remove_logo()
        self.assertTrue(new.closed)
        self.assertIsNone(draft.logo)

    async def test_close_releases_everything(self) -> None:
        images = [_FakeUpload(b"a"), _FakeUpload(b"b")]
        logo = _FakeUpload(b"logo")

        async with _session(_FakeOrchestrator()) as draft:
            await draft.add_images(images)
            await draft.set_logo(logo)

        self.assertTrue(all(u.closed for u in images))
        self.assertTrue(logo.closed)
        self.assertEqual(draft.images, ())

    async def test_remove_out_of_range(self) -> None:
        draft = _session(_FakeOrchestrator())
        with self.assertRaises(IndexError):
            await draft.remove_image(0)


if __name__ == "__main__":
    unittest.main()
