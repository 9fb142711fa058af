"""Instruction templates sent to the generation backend.

All builders are pure: the same details always produce the same text.
"""

from __future__ import annotations

from .details import ProductDetails


_NOT_SPECIFIED = "Not specified"

RECOGNITION_PROMPT = (
    "Look at the image and identify the main product. "
    "Reply with the full product name only (including the brand if it is visible), "
    "with no other words, description or punctuation."
)

_CAPTION_TEMPLATE = """\
You are a social media marketing specialist. Your task is to write captions for a post about a product on Instagram, Facebook and Twitter. The post artwork is a square image.

**Instructions:**
1. Analyze the product images.
2. Use the details below to write the captions.
3. Write one caption for EACH of these platforms: Instagram, Facebook and Twitter.
4. **Instagram:** aspirational tone, use emojis, short paragraphs and 3 to 5 relevant hashtags.
5. **Facebook:** a more informative tone, somewhat longer, with a clear call-to-action. Emojis are welcome.
6. **Twitter:** very short and direct (respect the character limit), with 1 to 2 main hashtags and optionally a link written as the placeholder [link].
7. Write every caption in {language}.
8. Return the answer strictly as a JSON object with the keys "instagram", "facebook" and "twitter", without any additional text or formatting.

**Product details:**
- **Name:** {name}
- **Price:** {price}
- **Target audience:** {audience}
- **Promotion/Highlight:** {promotion}
- **Art style:** {style}"""

_VISUAL_TEMPLATE = """\
**Task:** Act as an art director. Create a promotional artwork for a social media post (square 1:1 format) from the images and information provided.

**Assets:**
- The first images are the **products**.
- If there is one extra image at the end, it is the **brand logo**.

**Creative rules:**

1. **Product isolation:** Cleanly and professionally isolate the main product from its original background.

2. **Scene and composition (square 1:1):**
   - Create a background that matches the creative style: **"{style}"**. The background must be graphic and complement the product, not a photo of a real place.
   - Place the isolated product so the composition is balanced and attractive. The product is the focal point.
   - The product must remain 100% visible and unobstructed. NEVER place any text or logo on top of the product.

3. **Additional elements:**{typography}{logo}

4. **Final quality:** The result must be a clean, professional, high quality image. Do NOT add any other logo, watermark or random text."""

_TYPOGRAPHY_TEMPLATE = """
- **Typography:** Integrate the following texts into the artwork in harmony with the style "{style}":{lines}
  - **Placement:** NEVER, under any circumstance, place text over the product. The product must be 100% visible with no obstruction. Place the texts in empty areas of the composition.
  - **Legibility:** Use fonts and colors that guarantee excellent reading and contrast."""

_LOGO_SECTION = """
- **Logo:** The LAST image provided is the brand logo. Include this logo in the composition.
  - **Placement:** Put it in one of the corners, subtly, and **NEVER over the product**.
  - **Integrity:** Do NOT alter the logo (colors, shape, etc.)."""


def _or_not_specified(value: str) -> str:
    return value if value else _NOT_SPECIFIED


def format_price(price: str, *, currency_symbol: str) -> str:
    p = (price or "").strip()
    if not p:
        return ""
    symbol = (currency_symbol or "").strip()
    if not symbol or p.startswith(symbol):
        return p
    return f"{symbol} {p}"


def build_caption_prompt(
    details: ProductDetails,
    *,
    language: str,
    currency_symbol: str,
) -> str:
    return _CAPTION_TEMPLATE.format(
        language=language,
        name=_or_not_specified(details.product_name),
        price=_or_not_specified(format_price(details.price, currency_symbol=currency_symbol)),
        audience=_or_not_specified(details.target_audience),
        promotion=_or_not_specified(details.promotion),
        style=_or_not_specified(details.style),
    )


def _typography_section(details: ProductDetails, *, currency_symbol: str) -> str:
    if not details.has_typography:
        return ""

    lines = ""
    if details.product_name:
        lines += f'\n    - **Main text:** "{details.product_name}"'
    if details.price:
        price = format_price(details.price, currency_symbol=currency_symbol)
        lines += f'\n    - **Price:** "{price}" - highlight the price without overloading the artwork.'
    if details.promotion:
        lines += f'\n    - **Secondary text:** "{details.promotion}"'

    return _TYPOGRAPHY_TEMPLATE.format(style=details.style or _NOT_SPECIFIED, lines=lines)


def build_visual_prompt(
    details: ProductDetails,
    *,
    has_logo: bool,
    currency_symbol: str,
) -> str:
    typography = _typography_section(details, currency_symbol=currency_symbol)
    logo = _LOGO_SECTION if has_logo else ""
    if not typography and not logo:
        typography = "\n- None."

    return _VISUAL_TEMPLATE.format(
        style=details.style or _NOT_SPECIFIED,
        typography=typography,
        logo=logo,
    )
