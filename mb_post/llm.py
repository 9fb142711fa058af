from __future__ import annotations

from typing import Any, Protocol, Sequence

from openai import AsyncOpenAI

from .config_schema import OpenAIConfig, PromptsConfig
from .details import ProductDetails
from .encoder import EncodedImagePart
from .errors import ConfigError, LLMError
from .llm_schema import CAPTIONS_JSON_SCHEMA, CAPTIONS_SCHEMA_NAME, Captions
from .prompts import RECOGNITION_PROMPT, build_caption_prompt, build_visual_prompt
from .run_log import RunLogger


class _ResponsesAPI(Protocol):
    async def create(self, **kwargs: Any) -> Any: ...


class _ImagesAPI(Protocol):
    async def edit(self, **kwargs: Any) -> Any: ...


class _OpenAIClient(Protocol):
    responses: _ResponsesAPI
    images: _ImagesAPI


_TEXT_FORMAT: dict[str, Any] = {
    "format": {
        "type": "json_schema",
        "name": CAPTIONS_SCHEMA_NAME,
        "strict": True,
        "schema": CAPTIONS_JSON_SCHEMA,
    }
}

# Recognition answers are a product name; a small cap keeps them short.
_RECOGNITION_MAX_OUTPUT_TOKENS = 60


def _image_content(part: EncodedImagePart) -> dict[str, Any]:
    return {"type": "input_image", "image_url": part.data_uri()}


def _user_message(images: Sequence[EncodedImagePart], text: str) -> list[dict[str, Any]]:
    content = [_image_content(p) for p in images]
    content.append({"type": "input_text", "text": text})
    return [{"role": "user", "content": content}]


def _extract_output_text(response: Any) -> str:
    direct = (getattr(response, "output_text", None) or "").strip()
    if direct:
        return direct

    output = getattr(response, "output", None) or []
    for item in output:
        content = getattr(item, "content", None) or []
        for part in content:
            text = getattr(part, "text", None)
            if isinstance(text, str) and text.strip():
                return text.strip()

    raise LLMError("OpenAI response did not include output text")


def _visual_upload_names(parts: Sequence[EncodedImagePart], *, has_logo: bool) -> list[str]:
    names: list[str] = []
    for i, part in enumerate(parts):
        ext = part.mime_type.split("/", 1)[-1].split("+", 1)[0] or "png"
        if has_logo and i == len(parts) - 1:
            names.append(f"logo.{ext}")
        else:
            names.append(f"product_{i + 1}.{ext}")
    return names


def _extract_image_data_uri(response: Any, *, fallback_format: str) -> str | None:
    data = getattr(response, "data", None) or []
    if not data:
        return None

    first = data[0]
    b64 = getattr(first, "b64_json", None)
    if not isinstance(b64, str) or not b64.strip():
        return None

    fmt = (getattr(response, "output_format", None) or fallback_format or "png").strip().lower()
    return f"data:image/{fmt};base64,{b64.strip()}"


class OpenAIPostBackend:
    """
    OpenAI wrapper for the three backend operations of a generation cycle.

    - recognize_product: advisory; returns "" on any failure.
    - generate_captions: structured output; raises LLMError on any failure.
    - generate_visual_post: image edit; returns None on any failure.

    The SDK client is created with max_retries=0: a failed call is reported
    as-is and the user resubmits.
    """

    def __init__(
        self,
        api_key: str,
        *,
        openai_cfg: OpenAIConfig,
        prompts_cfg: PromptsConfig | None = None,
        client: _OpenAIClient | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        key = (api_key or "").strip()
        if not key:
            raise ConfigError(f"OpenAI API key is not set (expected in {openai_cfg.api_key_env})")

        self._cfg = openai_cfg
        self._prompts = prompts_cfg or PromptsConfig()
        self._client: _OpenAIClient = client or AsyncOpenAI(
            api_key=key,
            max_retries=0,
            timeout=openai_cfg.timeout_seconds,
        )
        self._logger = logger

    def _log_failure(self, event: str, exc: BaseException, *, cycle_id: str | None, **data: Any) -> None:
        if self._logger is not None:
            self._logger.exception(event, exc=exc, cycle_id=cycle_id, level="WARN", **data)

    async def recognize_product(
        self,
        images: Sequence[EncodedImagePart],
        *,
        cycle_id: str | None = None,
    ) -> str:
        if not images:
            return ""

        model = self._cfg.text_model
        try:
            response = await self._client.responses.create(
                model=model,
                input=_user_message(images[:1], RECOGNITION_PROMPT),
                max_output_tokens=_RECOGNITION_MAX_OUTPUT_TOKENS,
            )
            return _extract_output_text(response).strip()
        except Exception as e:
            self._log_failure("product_recognition_failed", e, cycle_id=cycle_id, model=model)
            return ""

    async def generate_captions(
        self,
        images: Sequence[EncodedImagePart],
        details: ProductDetails,
        *,
        cycle_id: str | None = None,
    ) -> Captions:
        model = self._cfg.text_model
        prompt = build_caption_prompt(
            details,
            language=self._prompts.caption_language,
            currency_symbol=self._prompts.currency_symbol,
        )

        try:
            response = await self._client.responses.create(
                model=model,
                input=_user_message(images, prompt),
                text=_TEXT_FORMAT,
                max_output_tokens=self._cfg.max_output_tokens,
            )
        except Exception as e:
            raise LLMError(f"OpenAI call failed ({model}): {e}") from e

        raw = _extract_output_text(response)
        try:
            return Captions.model_validate_json(raw)
        except Exception as e:
            raise LLMError(f"Failed to parse structured output ({model}): {e}") from e

    async def generate_visual_post(
        self,
        images: Sequence[EncodedImagePart],
        logo: EncodedImagePart | None,
        details: ProductDetails,
        *,
        cycle_id: str | None = None,
    ) -> str | None:
        model = self._cfg.image_model
        has_logo = logo is not None

        # Products first, logo strictly last: the prompt refers to "the LAST image".
        parts = list(images)
        if logo is not None:
            parts.append(logo)

        prompt = build_visual_prompt(
            details,
            has_logo=has_logo,
            currency_symbol=self._prompts.currency_symbol,
        )

        try:
            names = _visual_upload_names(parts, has_logo=has_logo)
            uploads = [p.to_upload(n) for p, n in zip(parts, names)]
            response = await self._client.images.edit(
                model=model,
                image=uploads,
                prompt=prompt,
                size=self._cfg.image_size,
                quality=self._cfg.image_quality,
                output_format=self._cfg.image_output_format,
                n=1,
            )
        except Exception as e:
            self._log_failure("visual_post_failed", e, cycle_id=cycle_id, model=model)
            return None

        uri = _extract_image_data_uri(response, fallback_format=self._cfg.image_output_format)
        if uri is None and self._logger is not None:
            self._logger.warning("visual_post_empty", cycle_id=cycle_id, model=model)
        return uri
