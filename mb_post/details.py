from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class ProductDetails:
    """
    Free-text details entered alongside the product photos.

    Missing values are always empty strings, never None.
    """

    product_name: str = ""
    price: str = ""
    target_audience: str = ""
    promotion: str = ""
    style: str = ""

    def __post_init__(self) -> None:
        for name in ("product_name", "price", "target_audience", "promotion", "style"):
            object.__setattr__(self, name, _clean(getattr(self, name)))

    @property
    def has_typography(self) -> bool:
        return bool(self.product_name or self.price or self.promotion)


class GeneratedPosts(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    instagram: str
    facebook: str
    twitter: str
    visual_post_url: str | None = None
