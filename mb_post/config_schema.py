from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Images edit only produces square output at these sizes.
_SQUARE_SIZES = ("256x256", "512x512", "1024x1024")


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


def _validate_non_empty(value: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError("must be a non-empty string")
    return text


PositiveInt = Annotated[int, Field(ge=1)]


class OpenAIConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api_key_env: str = "OPENAI_API_KEY"
    text_model: str = "gpt-4.1-mini"
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    image_quality: Literal["low", "medium", "high", "auto"] = "auto"
    image_output_format: Literal["png", "jpeg", "webp"] = "png"
    max_output_tokens: PositiveInt = 1200
    timeout_seconds: float = Field(120.0, gt=0)

    @field_validator("api_key_env")
    @classmethod
    def _api_key_env_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)

    @field_validator("text_model", "image_model")
    @classmethod
    def _model_must_be_set(cls, v: str) -> str:
        return _validate_non_empty(v)

    @field_validator("image_size")
    @classmethod
    def _image_size_must_be_square(cls, v: str) -> str:
        size = (v or "").strip().lower()
        if size not in _SQUARE_SIZES:
            raise ValueError(f"must be one of: {', '.join(_SQUARE_SIZES)}")
        return size


class PromptsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    caption_language: str = "Brazilian Portuguese"
    currency_symbol: str = "R$"

    @field_validator("caption_language")
    @classmethod
    def _language_must_be_set(cls, v: str) -> str:
        return _validate_non_empty(v)

    @field_validator("currency_symbol")
    @classmethod
    def _strip_currency(cls, v: str) -> str:
        return (v or "").strip()


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
