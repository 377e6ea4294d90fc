from __future__ import annotations

import os
import time
from typing import Any
from urllib.parse import urlparse

import httpx

from ..observability.logging import get_logger
from ..settings import settings
from .assets import save_bytes, url_for

log = get_logger("image_generator")

STYLE_PHRASES: dict[str, str] = {
    "realistic": "in a realistic photography style",
    "anime": "in detailed anime style, vibrant and clean lines",
    "cartoon": "in a cartoon style, bold outlines, playful",
    "storybook": "storybook illustration style, warm and imaginative",
    "pixel": "in retro pixel-art style, 8-bit",
    "cyberpunk": "in a neon-lit cyberpunk art style",
}

MODELS = ("dall-e-2", "dall-e-3")


class ImageGenerationError(RuntimeError):
    pass


class ImageNotConfigured(ImageGenerationError):
    pass


class ImageUpstreamError(ImageGenerationError):
    pass


def enhance_prompt(prompt: str, style: str) -> str:
    return f"{str(prompt or '').strip()}, {STYLE_PHRASES[style]}"


def _client(*, timeout_s: int = 120) -> Any:
    if not settings.openai_api_key:
        raise ImageNotConfigured("OPENAI_API_KEY not configured")
    from openai import OpenAI

    return OpenAI(api_key=settings.openai_api_key, max_retries=1, timeout=timeout_s)


def generate_image_urls(*, prompt: str, style: str, model: str | None = None, n: int = 1) -> list[str]:
    m = model or settings.openai_image_model
    enhanced = enhance_prompt(prompt, style)
    client = _client()
    try:
        resp = client.images.generate(
            prompt=enhanced,
            model=m,
            size=settings.openai_image_size,
            n=n,
            response_format="url",
        )
    except Exception as e:  # noqa: BLE001
        log.warning("image_generation_failed", model=m, style=style, error=str(e)[:300])
        raise ImageUpstreamError("Image generation failed") from e

    urls = [str(d.url) for d in (getattr(resp, "data", None) or []) if getattr(d, "url", None)]
    log.info("image_generated", model=m, style=style, count=len(urls))
    return urls


def download_to_assets(image_url: str, *, user_id: str) -> str:
    """
    Fetch a generated image and store it under generated/<user_id>/.
    Returns the public /assets URL.
    """
    ext = os.path.splitext(urlparse(image_url).path)[1].lower() or ".png"
    try:
        with httpx.Client(timeout=60.0, follow_redirects=True) as client:
            resp = client.get(image_url)
            resp.raise_for_status()
            data = resp.content
    except httpx.HTTPError as e:
        raise ImageUpstreamError("Failed to download generated image") from e

    dest = save_bytes(data, subdir=f"generated/{user_id}", filename=f"{int(time.time() * 1000)}{ext}")
    return url_for(dest)
