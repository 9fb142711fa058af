from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


CAPTIONS_SCHEMA_NAME = "mb_post_captions"

# NOTE: Hand-authored to stay within the subset of JSON Schema accepted by
# Structured Outputs (strict mode needs every property listed as required).
CAPTIONS_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "instagram": {"type": "string", "description": "Caption for Instagram"},
        "facebook": {"type": "string", "description": "Caption for Facebook"},
        "twitter": {"type": "string", "description": "Caption for Twitter/X"},
    },
    "required": ["instagram", "facebook", "twitter"],
}


class Captions(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    instagram: str
    facebook: str
    twitter: str
