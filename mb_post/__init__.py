from __future__ import annotations

from .config import config_sha256, load_config, resolve_runtime_secrets
from .config_schema import AppConfig
from .details import GeneratedPosts, ProductDetails
from .encoder import EncodedImagePart, encode_image, encode_images
from .errors import ConfigError, EncodingError, GenerationError, InputError, LLMError
from .llm import OpenAIPostBackend
from .orchestrator import PostOrchestrator
from .session import DraftSession

__all__ = [
    "AppConfig",
    "ConfigError",
    "DraftSession",
    "EncodedImagePart",
    "EncodingError",
    "GeneratedPosts",
    "GenerationError",
    "InputError",
    "LLMError",
    "OpenAIPostBackend",
    "PostOrchestrator",
    "ProductDetails",
    "config_sha256",
    "encode_image",
    "encode_images",
    "load_config",
    "resolve_runtime_secrets",
]
