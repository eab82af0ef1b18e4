"""Pydantic models for summaries, layouts, structured prompts and generation results."""
from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from errors import InvalidInputError


class _ValueEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class KnowledgeLevel(_ValueEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class LayoutType(_ValueEnum):
    VERTICAL_FLOW = "vertical_flow"
    GRID = "grid"
    F_PATTERN = "f_pattern"
    ACADEMIC = "academic"


class ContentType(_ValueEnum):
    HEADER = "header"
    CONCEPT = "concept"
    CONNECTOR = "connector"
    DIAGRAM = "diagram"
    FOOTER = "footer"


class GenerationStatus(_ValueEnum):
    PENDING = "pending"
    GENERATING_LAYOUT = "generating_layout"
    GENERATING_FINAL = "generating_final"
    GENERATING_VARIATIONS = "generating_variations"
    RENDERING = "rendering"
    COMPLETE = "complete"
    FAILED = "failed"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# Summary-level bound on concepts; the layout engine accepts a wider geometric range.
MIN_SUMMARY_CONCEPTS = 1
MAX_SUMMARY_CONCEPTS = 6


class Concept(_Frozen):
    name: str = Field(min_length=1)
    explanation: str = Field(min_length=10)
    visual_metaphor: str = Field(min_length=5)


class Summary(_Frozen):
    title: str = Field(min_length=1, max_length=200)
    one_liner: str = Field(min_length=10, max_length=300)
    key_concepts: List[Concept] = Field(min_length=MIN_SUMMARY_CONCEPTS, max_length=MAX_SUMMARY_CONCEPTS)
    key_finding: str = Field(min_length=10)
    real_world_impact: Optional[str] = None


class UserPreferences(_Frozen):
    background: Optional[str] = None
    preferred_colors: Optional[List[str]] = None
    style_preference: Optional[Literal["minimalist", "detailed", "academic"]] = None
    style_hints: Optional[str] = None


class GenerationOptions(_Frozen):
    generation_mode: Optional[Literal["single", "modular"]] = None
    include_layout_previews: Optional[bool] = None
    include_variations: Optional[bool] = None


class GenerationInput(_Frozen):
    summary: Summary
    knowledge_level: KnowledgeLevel
    tags: List[str] = Field(min_length=1)
    arxiv_id: str = Field(min_length=1)
    user_preferences: Optional[UserPreferences] = None
    options: Optional[GenerationOptions] = None

    @property
    def generation_mode(self) -> str:
        if self.options and self.options.generation_mode:
            return self.options.generation_mode
        return "single"


def format_validation_errors(exc: ValidationError) -> List[str]:
    """Flatten a pydantic error into ``path: message`` strings."""
    out: List[str] = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        out.append(f"{path}: {err.get('msg', 'invalid value')}")
    return out


def validate_generation_input(data: Any) -> GenerationInput:
    """Validate raw data into a GenerationInput, raising InvalidInputError with itemized field errors."""
    if isinstance(data, GenerationInput):
        return data
    try:
        return GenerationInput.model_validate(data)
    except ValidationError as exc:
        errors = format_validation_errors(exc)
        raise InvalidInputError("Invalid generation input: " + "; ".join(errors), errors) from None


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


class Position(_Frozen):
    x: str
    y: str


class Margins(_Frozen):
    top: float
    right: float
    bottom: float
    left: float


class LayoutSection(_Frozen):
    height_percentage: float
    position: Position
    content_type: ContentType


class LayoutStrategy(_Frozen):
    type: LayoutType
    sections: List[LayoutSection]
    margins: Margins
    spacing: float
    grid_columns: Optional[int] = None
    grid_rows: Optional[int] = None


class LayoutRecommendation(_Frozen):
    recommended: LayoutType
    alternatives: List[LayoutType]
    reasoning: str


class ValidationResult(_Frozen):
    valid: bool
    errors: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Structured prompt (renderer wire format)
# ---------------------------------------------------------------------------


class FiboObject(_Frozen):
    description: str
    location: str
    relationship: str
    relative_size: str
    shape_and_color: str
    texture: str
    appearance_details: str
    orientation: str


class TextElement(_Frozen):
    text: str
    location: str
    size: str
    color: str
    font: str
    appearance_details: str


class Lighting(_Frozen):
    conditions: str
    direction: str
    shadows: str


class Aesthetics(_Frozen):
    composition: str
    color_scheme: str
    mood_atmosphere: str
    preference_score: Literal["low", "medium", "high", "very high"]
    aesthetic_score: Literal["low", "medium", "high", "very high"]


class PhotographicCharacteristics(_Frozen):
    depth_of_field: str
    focus: str
    camera_angle: str
    lens_focal_length: str


class StructuredPrompt(_Frozen):
    short_description: str
    objects: List[FiboObject]
    background_setting: str
    lighting: Lighting
    aesthetics: Aesthetics
    photographic_characteristics: PhotographicCharacteristics
    style_medium: str
    text_render: List[TextElement]
    context: str
    artistic_style: str


# ---------------------------------------------------------------------------
# Renderer request / response
# ---------------------------------------------------------------------------


class ImageSize(_Frozen):
    width: int
    height: int


class RenderRequest(_Frozen):
    structured_prompt: StructuredPrompt
    seed: int
    image_size: ImageSize = ImageSize(width=1024, height=1024)


class RenderResult(_Frozen):
    request_id: Optional[str] = None
    status: str = "completed"
    image_url: Optional[str] = None
    generation_time_ms: Optional[int] = None


# ---------------------------------------------------------------------------
# Generation output
# ---------------------------------------------------------------------------


class StyleVariation(_Frozen):
    name: str
    description: str
    url: str


class GenerationMetadata(_Frozen):
    generation_time_ms: int
    knowledge_level: Optional[KnowledgeLevel] = None
    timestamp: str
    generation_mode: Optional[str] = None
    layout_type: Optional[LayoutType] = None
    fibo_seed: Optional[int] = None
    fibo_prompt: Optional[StructuredPrompt] = None
    storage_file_id: Optional[str] = None
    section_urls: Optional[List[str]] = None
    section_file_ids: Optional[List[Optional[str]]] = None
    layout_previews: Optional[List[str]] = None
    variations: Optional[List[StyleVariation]] = None


class GenerationOutput(_Frozen):
    request_id: str
    status: GenerationStatus
    final_image_url: Optional[str] = None
    metadata: GenerationMetadata
    error: Optional[str] = None
