"""Prompt templates for coloring pages and clipart elements"""

import random
from typing import List, Optional

from kdp_press.config.products import ClipartConfig, ColoringBookConfig

DIFFICULTIES = ("easy", "medium", "advanced")

AGE_HINTS = {
    "kids": "Make it fun, friendly, and suitable for children ages 4-12. ",
    "adults": "Make it intricate and sophisticated for adult colorists. ",
    "seniors": "Make it clear with medium detail levels, relaxing and enjoyable. ",
}

DIFFICULTY_HINTS = {
    "easy": "Use large, simple shapes with bold outlines. Minimal small details. ",
    "medium": "Use moderate detail with a mix of large and small elements. ",
    "advanced": "Use intricate details, complex patterns, and fine lines. ",
}

COLORING_STYLE_HINTS = {
    "mandala": "Create a symmetrical mandala design with concentric circles and geometric patterns. ",
    "nature": "Feature natural elements like trees, flowers, mountains, or landscapes. ",
    "animals": "Feature an animal with decorative patterns and details. ",
    "patterns": "Create repeating patterns and abstract designs. ",
    "fantasy": "Include fantasy elements like dragons, unicorns, or magical scenes. ",
    "floral": "Feature beautiful flowers, vines, and botanical elements. ",
    "geometric": "Use geometric shapes, tessellations, and mathematical patterns. ",
    "abstract": "Create abstract flowing shapes and artistic compositions. ",
    "characters": "Feature characters or people in interesting scenes or poses. ",
}

CLIPART_STYLE_HINTS = {
    "cute": "Make it adorable with big eyes, soft features, and kawaii aesthetics. ",
    "realistic": "Create with realistic details, accurate proportions, and natural textures. ",
    "watercolor": "Use soft watercolor textures, gentle blending, and artistic brush strokes. ",
    "hand-drawn": "Give it a hand-drawn appearance with sketch lines and artistic imperfections. ",
    "cartoon": "Make it playful with bold outlines, bright colors, and exaggerated features. ",
    "vintage": "Style with retro colors, classic motifs, and nostalgic elements. ",
    "modern": "Use clean lines, contemporary aesthetics, and minimalist design. ",
    "doodle": "Create with simple doodle style, whimsical lines, and fun details. ",
}


def page_difficulties(config: ColoringBookConfig, rng: Optional[random.Random] = None) -> List[str]:
    """
    Difficulty for every illustrated page.

    An explicit difficulty_sequence wins; 'mixed' draws from a Random seeded
    with config.seed unless an rng is passed in.
    """
    n = config.asset_count
    if config.difficulty_sequence is not None:
        return list(config.difficulty_sequence[:n])
    if config.difficulty != "mixed":
        return [config.difficulty] * n
    rng = rng or random.Random(config.seed)
    return [rng.choice(DIFFICULTIES) for _ in range(n)]


def coloring_page_prompt(config: ColoringBookConfig, page_number: int, difficulty: str) -> str:
    prompt = "Create a detailed black and white line art illustration for a coloring book. "
    prompt += f"Theme: {config.theme}. "
    prompt += f"Style: {config.style}. "
    prompt += f"Page {page_number}. "
    prompt += AGE_HINTS.get(config.age_group or "", "")
    prompt += DIFFICULTY_HINTS.get(difficulty, "")
    prompt += COLORING_STYLE_HINTS.get(config.style.lower(), "")
    prompt += "CRITICAL: The image must be black line art on white background only. "
    prompt += "No shading, no gray tones, no colors - just clean black outlines for coloring. "
    prompt += "The design should fill the page nicely with appropriate margins."
    return prompt


def clipart_prompt(config: ClipartConfig, index: int) -> str:
    """Prompt for element ``index`` (0-based)."""
    prompt = f"Create a {config.style} style clipart illustration of "
    if index < len(config.subjects) and config.subjects[index]:
        prompt += config.subjects[index]
    else:
        prompt += f"a {config.theme} element (variation {index + 1})"
    prompt += ". "
    prompt += CLIPART_STYLE_HINTS.get(config.style.lower(), "")
    prompt += "IMPORTANT: The image must have a completely transparent background. "
    prompt += "The subject should be centered and clearly defined. "
    if config.color_scheme:
        prompt += f"Use colors from this palette: {', '.join(config.color_scheme)}. "
    prompt += f"Create at {config.pixels}px resolution for high-quality printing."
    return prompt
