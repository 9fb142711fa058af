from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


# 1x1 transparent PNG.
_OFFLINE_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)

_OFFLINE_PRODUCT_NAME = "Offline Sample Product"

_OFFLINE_CAPTIONS: dict[str, str] = {
    "instagram": (
        "Seu novo favorito chegou ✨\n\n"
        "Feito para acompanhar cada passo do seu dia.\n\n"
        "#novidade #estilo #lançamento"
    ),
    "facebook": (
        "Conheça o lançamento que vai transformar a sua rotina. "
        "Qualidade, conforto e design em um só produto. "
        "Garanta o seu hoje mesmo pelo link da loja! 🛒"
    ),
    "twitter": "Chegou o lançamento que faltava. Garanta o seu: [link] #novidade",
}


@dataclass
class _OfflineResponse:
    output_text: str
    output: list[Any] = field(default_factory=list)


@dataclass
class _OfflineImageData:
    b64_json: str


@dataclass
class _OfflineImagesResponse:
    data: list[_OfflineImageData]
    output_format: str = "png"


class _OfflineResponses:
    def __init__(self, calls: list[dict[str, Any]]) -> None:
        self._calls = calls

    async def create(self, **kwargs: Any) -> _OfflineResponse:
        self._calls.append({"endpoint": "responses.create", **kwargs})
        if "text" in kwargs:
            return _OfflineResponse(output_text=json.dumps(_OFFLINE_CAPTIONS, ensure_ascii=False))
        return _OfflineResponse(output_text=_OFFLINE_PRODUCT_NAME)


class _OfflineImages:
    def __init__(self, calls: list[dict[str, Any]]) -> None:
        self._calls = calls

    async def edit(self, **kwargs: Any) -> _OfflineImagesResponse:
        self._calls.append({"endpoint": "images.edit", **kwargs})
        return _OfflineImagesResponse(
            data=[_OfflineImageData(b64_json=_OFFLINE_PNG_B64)],
            output_format=str(kwargs.get("output_format") or "png"),
        )


class OfflineOpenAIClient:
    """
    Network-free stand-in for AsyncOpenAI used by `--offline` runs.

    Answers recognition with a fixed product name, captions with a fixed
    schema-valid JSON object, and image edits with a 1x1 PNG.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.responses = _OfflineResponses(self.calls)
        self.images = _OfflineImages(self.calls)
