"""Prompt templates for portrait stylization and trained-model generation."""

from __future__ import annotations

from string import Template

# --- Per-style prompt-writer instructions (chat model) ---

STYLE_PROMPTS: dict[str, dict[str, str]] = {
    "ghibli": {
        "system": (
            "You are an expert in Studio Ghibli's art style and anime aesthetics. "
            "Your goal is to create detailed, evocative prompts that will help generate images "
            "capturing the essence of Hayao Miyazaki's distinctive style."
        ),
        "user": (
            "Create a detailed prompt for generating an image in Studio Ghibli's style. "
            "The image should have soft, warm lighting, pastel colors, and the distinctive Ghibli "
            "character design. Include specific details about lighting, atmosphere, and artistic "
            "elements that make Ghibli's style unique."
        ),
    },
    "simpsons": {
        "system": (
            "You are an expert in The Simpsons' distinctive art style and animation. "
            "Your goal is to create detailed prompts that capture Matt Groening's iconic "
            "character design and color palette."
        ),
        "user": (
            "Create a detailed prompt for generating an image in The Simpsons style. "
            "Focus on the distinctive yellow skin tone, overbite, and large eyes. Include specific "
            "details about the bold colors, line work, and characteristics that make The Simpsons "
            "style immediately recognizable."
        ),
    },
    "cartoon": {
        "system": (
            "You are an expert in Disney's traditional animation style. "
            "Your goal is to create detailed prompts that capture the magic and artistry of "
            "classic Disney animation."
        ),
        "user": (
            "Create a detailed prompt for generating an image in classic Disney animation style. "
            "Focus on the fluid lines, expressive features, and rich color palette. Include "
            "specific details about the artistic elements that make Disney's style timeless."
        ),
    },
    "pixar": {
        "system": (
            "You are an expert in Pixar's 3D animation style. "
            "Your goal is to create detailed prompts that capture Pixar's signature blend of "
            "realism and stylization."
        ),
        "user": (
            "Create a detailed prompt for generating an image in Pixar's style. "
            "Focus on the detailed texturing, expressive features, and cinematic lighting. "
            "Include specific details about the technical and artistic elements that make "
            "Pixar's style distinctive."
        ),
    },
}

# --- Trained-model portrait templates ---

PORTRAIT = Template(
    "A photo of $trigger_word $scene, "
    "portrait, high detail, sharp focus, natural skin texture"
)

STYLED_PORTRAIT = Template(
    "A portrait of $trigger_word $scene, $style_hint"
)

STYLE_HINTS: dict[str, str] = {
    "ghibli": "in Studio Ghibli anime style, soft warm lighting, pastel colors",
    "simpsons": "in The Simpsons cartoon style, yellow skin, bold outlines",
    "cartoon": "in classic Disney animation style, fluid lines, rich colors",
    "pixar": "in Pixar 3D animation style, cinematic lighting, detailed textures",
}

DEFAULT_SCENE = "in a business suit"
