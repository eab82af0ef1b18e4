"""Color schemes, typography and swatch tables keyed by knowledge level."""
from __future__ import annotations

from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict

from models import KnowledgeLevel


class ColorScheme(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    light: str
    dark: str


class Typography(BaseModel):
    model_config = ConfigDict(frozen=True)

    title_font: str
    heading_font: str
    body_font: str
    title_size: str
    subtitle_size: str
    heading_size: str
    body_size: str
    callout_size: str
    caption_size: str
    heading_color: str
    body_color: str


COLOR_SCHEMES: Dict[KnowledgeLevel, ColorScheme] = {
    KnowledgeLevel.BEGINNER: ColorScheme(
        primary="#4299E1",  # bright blue
        secondary="#9F7AEA",  # purple
        accent="#48BB78",  # bright green
        background="#FFFFFF",
        text="#2D3748",
        light="#EBF8FF",
        dark="#2C5282",
    ),
    KnowledgeLevel.INTERMEDIATE: ColorScheme(
        primary="#2C5282",  # professional blue
        secondary="#2C7A7B",  # teal
        accent="#D69E2E",  # gold
        background="#F7FAFC",
        text="#1A202C",
        light="#E6FFFA",
        dark="#1A365D",
    ),
    KnowledgeLevel.ADVANCED: ColorScheme(
        primary="#1A365D",  # dark blue
        secondary="#2D3748",  # dark gray
        accent="#4A5568",  # medium gray
        background="#EDF2F7",
        text="#000000",
        light="#E2E8F0",
        dark="#1A202C",
    ),
}

TYPOGRAPHY: Dict[KnowledgeLevel, Typography] = {
    KnowledgeLevel.BEGINNER: Typography(
        title_font="bold rounded sans-serif, friendly (similar to Poppins or Nunito)",
        heading_font="bold sans-serif, clear and friendly",
        body_font="regular sans-serif, highly readable (similar to Inter or Open Sans)",
        title_size="48px equivalent in large context",
        subtitle_size="24px equivalent",
        heading_size="28px equivalent",
        body_size="18px equivalent",
        callout_size="20px equivalent",
        caption_size="14px equivalent",
        heading_color="#2D3748",
        body_color="#4A5568",
    ),
    KnowledgeLevel.INTERMEDIATE: Typography(
        title_font="bold sans-serif, professional (similar to Inter or Helvetica Neue)",
        heading_font="bold sans-serif, clean",
        body_font="regular sans-serif, technical (similar to Inter or Roboto)",
        title_size="44px equivalent",
        subtitle_size="22px equivalent",
        heading_size="24px equivalent",
        body_size="16px equivalent",
        callout_size="18px equivalent",
        caption_size="12px equivalent",
        heading_color="#1A202C",
        body_color="#2D3748",
    ),
    KnowledgeLevel.ADVANCED: Typography(
        title_font="bold serif or condensed sans-serif, academic (similar to Merriweather or IBM Plex Sans Condensed)",
        heading_font="bold condensed sans-serif",
        body_font="regular serif or sans-serif, scholarly (similar to Georgia or IBM Plex Sans)",
        title_size="40px equivalent",
        subtitle_size="20px equivalent",
        heading_size="20px equivalent",
        body_size="14px equivalent",
        callout_size="16px equivalent",
        caption_size="11px equivalent",
        heading_color="#000000",
        body_color="#2D3748",
    ),
}

# Concept container backgrounds, picked by index % 4.
CONTAINER_SWATCHES: Dict[KnowledgeLevel, List[str]] = {
    KnowledgeLevel.BEGINNER: ["#F7FAFC", "#EBF8FF", "#F0FFF4", "#FFFAF0"],
    KnowledgeLevel.INTERMEDIATE: ["#EDF2F7", "#E6FFFA", "#FED7E2", "#FAF5FF"],
    KnowledgeLevel.ADVANCED: ["#E2E8F0", "#CBD5E0", "#A0AEC0", "#718096"],
}

# Concept accent colors, picked by index % len(palette).
ACCENT_PALETTES: Dict[KnowledgeLevel, List[str]] = {
    KnowledgeLevel.BEGINNER: ["#48BB78", "#4299E1", "#9F7AEA", "#ED8936"],
    KnowledgeLevel.INTERMEDIATE: ["#D69E2E", "#2C7A7B", "#2C5282"],
    KnowledgeLevel.ADVANCED: ["#4A5568", "#1A365D"],
}


def select_color_scheme(level: KnowledgeLevel) -> ColorScheme:
    return COLOR_SCHEMES[KnowledgeLevel(level)]


def select_typography(level: KnowledgeLevel) -> Typography:
    return TYPOGRAPHY[KnowledgeLevel(level)]


def container_color(level: KnowledgeLevel, index: int) -> str:
    swatches = CONTAINER_SWATCHES[KnowledgeLevel(level)]
    return swatches[index % len(swatches)]


def accent_color(level: KnowledgeLevel, index: int) -> str:
    palette = ACCENT_PALETTES[KnowledgeLevel(level)]
    return palette[index % len(palette)]


# Base body size per level in px; concept explanations scale from here by length.
BODY_BASE_SIZES: Dict[KnowledgeLevel, float] = {
    KnowledgeLevel.BEGINNER: 18,
    KnowledgeLevel.INTERMEDIATE: 16,
    KnowledgeLevel.ADVANCED: 14,
}

# (name, prompt) pairs handed to a style-variation generator.
STYLE_VARIATION_PRESETS: List[Tuple[str, str]] = [
    ("Vibrant", "Same layout and content, but with vibrant, saturated colors, energetic feel"),
    ("Dark Mode", "Same layout and content, but with dark background, light text, night mode style"),
    ("Pastel", "Same layout and content, but with soft pastel colors, gentle and calming"),
    ("High Contrast", "Same layout and content, but with high contrast black and white with single accent color"),
    ("Gradient", "Same layout and content, but with beautiful gradient backgrounds, modern and stylish"),
]
