from __future__ import annotations

import asyncio
import base64
import binascii
import inspect
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, Sequence, Union

from .errors import EncodingError


class _Upload(Protocol):
    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


ImageSource = Union[str, Path, _Upload]


@dataclass(frozen=True)
class EncodedImagePart:
    """An image in transport form: base64 payload plus its MIME type."""

    data: str
    mime_type: str

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str) -> "EncodedImagePart":
        mime = _require_image_mime(mime_type, source="<bytes>")
        if not raw:
            raise EncodingError("Image <bytes> is empty")
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime)

    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def raw_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise EncodingError(f"Invalid base64 payload for {self.mime_type} image") from e

    def to_upload(self, name: str) -> tuple[str, bytes, str]:
        """Return a (filename, bytes, mime) tuple accepted by multipart uploads."""
        return name, self.raw_bytes(), self.mime_type


def _require_image_mime(mime_type: str | None, *, source: str) -> str:
    mime = (mime_type or "").strip().lower()
    if not mime:
        raise EncodingError(f"Could not determine the image type of {source}")
    if not mime.startswith("image/"):
        raise EncodingError(f"{source} is not an image ({mime})")
    return mime


def _describe(source: Any) -> str:
    if isinstance(source, (str, Path)):
        return str(source)
    name = getattr(source, "filename", None)
    return str(name) if name else type(source).__name__


async def _read_path(path: Path) -> tuple[bytes, str | None]:
    mime, _ = mimetypes.guess_type(path.name)
    try:
        raw = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise EncodingError(f"Failed to read image file: {path}") from e
    return raw, mime


async def _read_upload(upload: _Upload) -> tuple[bytes, str | None]:
    try:
        # Uploads can be encoded more than once (recognition, then submit).
        seek = getattr(upload, "seek", None)
        if callable(seek):
            rewound = seek(0)
            if inspect.isawaitable(rewound):
                await rewound
        raw = await upload.read()
    except OSError as e:
        raise EncodingError(f"Failed to read uploaded image: {_describe(upload)}") from e

    mime = getattr(upload, "content_type", None)
    if not mime:
        name = getattr(upload, "filename", None) or ""
        mime, _ = mimetypes.guess_type(name)
    return raw, mime


async def encode_image(source: ImageSource) -> EncodedImagePart:
    """
    Read an image source fully and convert it to an EncodedImagePart.

    Paths take their MIME type from the file name; uploads use their declared
    content type. Raises EncodingError when the source cannot be read, is
    empty, or is not an image.
    """
    label = _describe(source)

    if isinstance(source, (str, Path)):
        raw, mime = await _read_path(Path(source))
    elif callable(getattr(source, "read", None)):
        raw, mime = await _read_upload(source)
    else:
        raise EncodingError(f"Unsupported image source: {type(source).__name__}")

    checked = _require_image_mime(mime, source=label)
    if not raw:
        raise EncodingError(f"Image {label} is empty")

    return EncodedImagePart(data=base64.b64encode(raw).decode("ascii"), mime_type=checked)


async def encode_images(sources: Sequence[ImageSource]) -> list[EncodedImagePart]:
    """Encode sources concurrently; the result keeps the input order."""
    if not sources:
        return []
    parts = await asyncio.gather(*(encode_image(s) for s in sources))
    return list(parts)
