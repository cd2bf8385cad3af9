"""Prompt builder for the art styles and for trained-model portraits."""

from __future__ import annotations

import logging

from prompts.templates import (
    DEFAULT_SCENE,
    PORTRAIT,
    STYLE_HINTS,
    STYLE_PROMPTS,
    STYLED_PORTRAIT,
)
from stylizer.models import ArtStyle

logger = logging.getLogger(__name__)


def parse_style(style: str | ArtStyle | None) -> ArtStyle:
    """Return the ArtStyle for ``style``; raise ValueError("Invalid style") otherwise."""
    if isinstance(style, ArtStyle):
        return style
    if not isinstance(style, str):
        raise ValueError("Invalid style")
    try:
        return ArtStyle(style.strip().lower())
    except ValueError:
        raise ValueError("Invalid style") from None


def style_messages(style: str | ArtStyle) -> list[dict[str, str]]:
    """Chat messages asking the prompt writer for a prompt in ``style``."""
    art_style = parse_style(style)
    pair = STYLE_PROMPTS[art_style.value]
    return [
        {"role": "system", "content": pair["system"]},
        {"role": "user", "content": pair["user"]},
    ]


def build_portrait_prompt(
    trigger_word: str,
    style: str | ArtStyle | None = None,
    scene: str | None = None,
) -> str:
    """Build a generation prompt that references the trained trigger word."""
    if not trigger_word:
        raise ValueError("Trigger word is required")

    scene = (scene or DEFAULT_SCENE).strip()
    if style:
        art_style = parse_style(style)
        prompt = STYLED_PORTRAIT.safe_substitute(
            trigger_word=trigger_word,
            scene=scene,
            style_hint=STYLE_HINTS[art_style.value],
        )
    else:
        prompt = PORTRAIT.safe_substitute(trigger_word=trigger_word, scene=scene)

    logger.debug("Built portrait prompt for %s: %s", trigger_word, prompt)
    return prompt
