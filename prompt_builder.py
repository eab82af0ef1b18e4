"""Compile a paper summary and layout into renderer structured prompts.

Everything here is a pure function of its arguments: the same input and layout
always produce the same prompt. Seeds are the orchestrator's business.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from layout_engine import LayoutEngine, body_sections
from models import (
    Aesthetics,
    Concept,
    ContentType,
    FiboObject,
    GenerationInput,
    KnowledgeLevel,
    LayoutSection,
    LayoutStrategy,
    Lighting,
    PhotographicCharacteristics,
    StructuredPrompt,
    TextElement,
)
from styles import (
    BODY_BASE_SIZES,
    ColorScheme,
    Typography,
    accent_color,
    container_color,
    select_color_scheme,
    select_typography,
)

MAX_EXPLANATION_CHARS = 150
MAX_FINDING_CHARS = 100
ELLIPSIS = "..."

# Target sizes for overlay text, in pt equivalents.
TITLE_PT = 72
SUBTITLE_PT = 24
HEADING_PT = 28
BODY_PT = 16
CALLOUT_PT = 20
CAPTION_PT = 12

OVERLAY = "OVERLAY TEXT LAYER"

LEVEL_DESCRIPTORS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "friendly and approachable with simple visual metaphors, suitable for general audience",
    KnowledgeLevel.INTERMEDIATE: "professional and technical with diagrams and practical examples, for engineers and practitioners",
    KnowledgeLevel.ADVANCED: "academic and dense with mathematical notation and detailed methodology, for researchers",
}

HEADER_ICONS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "a friendly brain-with-lightbulb icon representing learning and understanding",
    KnowledgeLevel.INTERMEDIATE: "a technical gear-and-circuit icon representing engineering and implementation",
    KnowledgeLevel.ADVANCED: "a scholarly book-and-equation icon representing research and academia",
}

CONCEPT_TONES: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "simple, friendly, and extremely readable",
    KnowledgeLevel.INTERMEDIATE: "technical, practical, and professionally clear",
    KnowledgeLevel.ADVANCED: "dense, scholarly, but still perfectly legible",
}

EXPLANATION_STYLES: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "friendly and conversational tone, simple language",
    KnowledgeLevel.INTERMEDIATE: "professional and clear, technical but accessible",
    KnowledgeLevel.ADVANCED: "academic and precise, dense information, scholarly tone",
}

BACKGROUNDS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: (
        "Clean, crisp white background ({bg}) with subtle decorative elements like light dots or abstract "
        "shapes at 5% opacity. Bright, welcoming, and perfectly smooth with no artifacts or noise. "
        "High-quality flat design."
    ),
    KnowledgeLevel.INTERMEDIATE: (
        "Professional light gray background ({bg}) with subtle grid pattern at 3% opacity. Clean, technical "
        "feel with sharp, precise lines and no blur or distortion. Vector-quality smoothness."
    ),
    KnowledgeLevel.ADVANCED: (
        "Academic off-white background ({bg}) with minimal texture. Serious, scholarly appearance with clean, "
        "artifact-free rendering. No distractions, perfectly smooth surface."
    ),
}

SHADOWS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "Minimal, only subtle drop shadows on container sections to create slight depth separation",
    KnowledgeLevel.INTERMEDIATE: "Very minimal shadows, nearly flat design for professional appearance",
    KnowledgeLevel.ADVANCED: "Almost none, flat print-style design with hairline separators instead of shadows",
}

COMPOSITIONS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "Vertical flow layout, top-to-bottom reading order, centered alignment, generous whitespace, 10% margins",
    KnowledgeLevel.INTERMEDIATE: "Grid or F-pattern layout, clear visual hierarchy, balanced spacing, 8% margins, efficient use of space",
    KnowledgeLevel.ADVANCED: "Dense multi-column layout, maximized information density, minimal margins (5%), academic journal style",
}

MOODS: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "Educational, approachable, friendly, encouraging, inspiring",
    KnowledgeLevel.INTERMEDIATE: "Professional, trustworthy, modern, practical, confident",
    KnowledgeLevel.ADVANCED: "Scholarly, authoritative, rigorous, intellectual, serious",
}

PHOTOGRAPHIC: Dict[KnowledgeLevel, PhotographicCharacteristics] = {
    KnowledgeLevel.BEGINNER: PhotographicCharacteristics(
        depth_of_field="Deep focus - all elements sharp from front to back, no blur",
        focus="Sharp focus on text elements - overlay text must be crystal clear with no diffusion blur",
        camera_angle="Straight-on, orthographic view, no perspective distortion",
        lens_focal_length="Standard - no wide-angle or telephoto distortion that affects text readability",
    ),
    KnowledgeLevel.INTERMEDIATE: PhotographicCharacteristics(
        depth_of_field="Deep focus - diagrams and labels equally sharp",
        focus="Sharp throughout, precise line work and crisp overlay labels",
        camera_angle="Straight-on, orthographic technical-drawing view",
        lens_focal_length="Standard - no distortion of diagram geometry",
    ),
    KnowledgeLevel.ADVANCED: PhotographicCharacteristics(
        depth_of_field="Not applicable - flat 2D print layout, everything in focus",
        focus="Uniformly sharp, suitable for fine notation and small annotations",
        camera_angle="Straight-on, orthographic page view, no perspective",
        lens_focal_length="Not applicable - 2D typeset illustration",
    ),
}

ARTISTIC_STYLES: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: (
        "minimalist, modern infographic, flat design, friendly illustration, clean vector art, educational, "
        "colorful, sharp lines, high resolution, crystal-clear text, print-ready"
    ),
    KnowledgeLevel.INTERMEDIATE: (
        "professional infographic, technical illustration, clean design, modern, engineering-style diagrams, "
        "sharp and precise, high-quality vector graphics, perfectly legible text"
    ),
    KnowledgeLevel.ADVANCED: (
        "academic infographic, scholarly design, precise technical diagrams, mathematical notation, "
        "journal-quality, muted colors, ultra-sharp rendering, publication-ready typography"
    ),
}

AUDIENCES: Dict[KnowledgeLevel, str] = {
    KnowledgeLevel.BEGINNER: "intelligent adults with no technical background who want to understand influential research",
    KnowledgeLevel.INTERMEDIATE: "engineers, practitioners, and ML professionals staying current with research",
    KnowledgeLevel.ADVANCED: "PhD researchers, academics, and experts doing literature review or deep technical study",
}

STYLE_MEDIUM = "digital illustration, infographic, educational poster"


def truncate(text: str, limit: int) -> str:
    """Hard cut to ``limit`` characters, ending in an ellipsis when shortened."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def body_font_size(explanation: str, level: KnowledgeLevel) -> str:
    """Size for a concept explanation, shrinking as the full (untruncated) text grows."""
    size = LayoutEngine.calculate_font_size(len(explanation), BODY_BASE_SIZES[KnowledgeLevel(level)])
    return f"{round(size, 1):g}px equivalent"


def overlay_details(point_size: int, details: str) -> str:
    return (
        f"{OVERLAY}: render as a crisp vector overlay on top of the background, NOT diffusion-generated. "
        f"{details} Target size {point_size}pt equivalent, anti-aliased edges, no blurriness."
    )


class PromptBuilder:
    def __init__(self, layout_engine: Optional[LayoutEngine] = None) -> None:
        self.layout_engine = layout_engine or LayoutEngine()

    # -- whole poster -----------------------------------------------------

    def build(self, inp: GenerationInput, layout: LayoutStrategy) -> StructuredPrompt:
        """Structured prompt for rendering the whole poster in one image."""
        level = inp.knowledge_level
        colors = select_color_scheme(level)
        typography = select_typography(level)
        return StructuredPrompt(
            short_description=self._short_description(inp, layout),
            objects=self._objects(inp, layout, colors),
            background_setting=self._background(colors, level),
            lighting=self._lighting(level),
            aesthetics=self._aesthetics(level, colors),
            photographic_characteristics=PHOTOGRAPHIC[level],
            style_medium=STYLE_MEDIUM,
            text_render=self._text_elements(inp, typography),
            context=self._context(inp),
            artistic_style=ARTISTIC_STYLES[level],
        )

    # -- modular sections -------------------------------------------------

    def build_header_section(self, inp: GenerationInput, layout: LayoutStrategy) -> StructuredPrompt:
        level = inp.knowledge_level
        colors = select_color_scheme(level)
        typography = select_typography(level)
        header = _first(layout, ContentType.HEADER)
        return StructuredPrompt(
            short_description=(
                f'Header section of an educational infographic for "{inp.summary.title}". Clean banner design '
                "with title and subtitle as overlay text layers. High contrast, professional typography."
            ),
            objects=[self._header_object(inp.summary.title, level, header, colors)] if header else [],
            background_setting=self._background(colors, level),
            lighting=self._lighting(level),
            aesthetics=self._aesthetics(level, colors),
            photographic_characteristics=PHOTOGRAPHIC[level],
            style_medium="digital illustration, infographic header, professional banner",
            text_render=[self._title_text(inp, typography), self._subtitle_text(inp, typography)],
            context=f"Header section for a {level.value} level infographic. Focus on clear, readable overlay text.",
            artistic_style=ARTISTIC_STYLES[level],
        )

    def build_concept_section(
        self, concept: Concept, index: int, level: KnowledgeLevel, layout: LayoutStrategy
    ) -> StructuredPrompt:
        level = KnowledgeLevel(level)
        colors = select_color_scheme(level)
        typography = select_typography(level)
        sections = body_sections(layout)
        section = sections[index] if 0 <= index < len(sections) else None
        return StructuredPrompt(
            short_description=(
                f'Concept section {index + 1}: "{concept.name}". Educational infographic section with heading '
                "and explanation as overlay text layers, plus a visual representation of the concept."
            ),
            objects=[self._body_object(concept, index, level, section, colors)] if section else [],
            background_setting=self._background(colors, level),
            lighting=self._lighting(level),
            aesthetics=self._aesthetics(level, colors),
            photographic_characteristics=PHOTOGRAPHIC[level],
            style_medium="digital illustration, infographic concept section, educational diagram",
            text_render=self._concept_texts(concept, index, level, typography),
            context=(
                f"Concept section for a {level.value} level audience. Emphasize clear, readable overlay text "
                "with visual diagram support."
            ),
            artistic_style=ARTISTIC_STYLES[level],
        )

    def build_footer_section(self, inp: GenerationInput, layout: LayoutStrategy) -> StructuredPrompt:
        level = inp.knowledge_level
        colors = select_color_scheme(level)
        typography = select_typography(level)
        footer = _first(layout, ContentType.FOOTER)
        return StructuredPrompt(
            short_description=(
                "Footer section with key insight and citation. Professional callout banner with overlay text "
                "for maximum readability."
            ),
            objects=[self._footer_object(inp.summary.key_finding, level, footer, colors)] if footer else [],
            background_setting=self._background(colors, level),
            lighting=self._lighting(level),
            aesthetics=self._aesthetics(level, colors),
            photographic_characteristics=PHOTOGRAPHIC[level],
            style_medium="digital illustration, infographic footer, professional banner",
            text_render=[self._callout_text(inp, typography), self._citation_text(inp, typography)],
            context=(
                f"Footer section for a {level.value} level infographic. Focus on a clear key insight with "
                "professional citation."
            ),
            artistic_style=ARTISTIC_STYLES[level],
        )

    # -- shared field helpers -----------------------------------------------

    @staticmethod
    def _short_description(inp: GenerationInput, layout: LayoutStrategy) -> str:
        return "\n".join(
            [
                f'A high-resolution, professional-quality educational infographic explaining "{inp.summary.title}" '
                f"from research paper arxiv/{inp.arxiv_id}.",
                f"The design uses a {layout.type.value} layout with {len(inp.summary.key_concepts)} main concept sections.",
                f"Style is {LEVEL_DESCRIPTORS[inp.knowledge_level]}.",
                "CRITICAL: all text_render elements are OVERLAY TEXT - vector overlays composited on top of the "
                "background, NOT diffusion-generated text within the image.",
                "Text must be crystal clear, sharp and fully legible with high contrast; visual elements use clean "
                "vector-style graphics with ample white space around text.",
            ]
        )

    def _objects(self, inp: GenerationInput, layout: LayoutStrategy, colors: ColorScheme) -> List[FiboObject]:
        level = inp.knowledge_level
        concepts = inp.summary.key_concepts
        objects: List[FiboObject] = []
        body_index = 0
        for section in layout.sections:
            kind = section.content_type
            if kind == ContentType.HEADER:
                objects.append(self._header_object(inp.summary.title, level, section, colors))
            elif kind == ContentType.FOOTER:
                objects.append(self._footer_object(inp.summary.key_finding, level, section, colors))
            elif kind == ContentType.CONNECTOR:
                objects.append(self._connector_object(len(concepts), section, colors))
            else:
                if body_index < len(concepts):
                    objects.append(self._body_object(concepts[body_index], body_index, level, section, colors))
                body_index += 1
        return objects

    def _location(self, section: LayoutSection) -> str:
        anchor = self.layout_engine.get_position_string(section)
        return f"{anchor}, {section.position.y} from top, {section.position.x} horizontally"

    @staticmethod
    def _relative_size(section: LayoutSection) -> str:
        return f"{round(section.height_percentage, 2):g}% of total vertical space"

    @staticmethod
    def _gradient(colors: ColorScheme) -> str:
        return f"smooth gradient from {colors.primary} to {colors.secondary}"

    def _header_object(
        self, title: str, level: KnowledgeLevel, section: LayoutSection, colors: ColorScheme
    ) -> FiboObject:
        return FiboObject(
            description=(
                f'Main header banner containing the title "{title}" and {HEADER_ICONS[level]}. '
                "Professional design with sharp edges and high contrast that immediately communicates the topic."
            ),
            location=self._location(section),
            relationship="Primary visual anchor, introduces the research topic to the viewer",
            relative_size=self._relative_size(section),
            shape_and_color=f"Rounded rectangle banner with {self._gradient(colors)}, high contrast with white text",
            texture="flat vector-style with subtle gradient, perfectly smooth finish, no artifacts",
            appearance_details=(
                "Razor-sharp edges, space reserved for overlay title text, small research-themed decorative "
                "pattern in the background at 10% opacity"
            ),
            orientation="horizontal banner spanning full width",
        )

    def _body_object(
        self,
        concept: Concept,
        index: int,
        level: KnowledgeLevel,
        section: LayoutSection,
        colors: ColorScheme,
    ) -> FiboObject:
        if section.content_type == ContentType.DIAGRAM:
            return self._diagram_object(concept, index, level, section, colors)
        return self._concept_object(concept, index, level, section, colors)

    def _concept_object(
        self,
        concept: Concept,
        index: int,
        level: KnowledgeLevel,
        section: LayoutSection,
        colors: ColorScheme,
    ) -> FiboObject:
        return FiboObject(
            description=concept_visual_description(concept, level),
            location=self._location(section),
            relationship=f"Concept {index + 1}, sequentially connected to the other concepts",
            relative_size=self._relative_size(section),
            shape_and_color=(
                f"Clean rounded container with light background {container_color(level, index)}, "
                f"high-contrast accent color {accent_color(level, index)}, sharp edges"
            ),
            texture="flat vector illustration style with subtle depth through precise shadows, no blur",
            appearance_details=(
                f"Large numbered label '{index + 1}' in a circle at top-left, clear visual hierarchy, "
                f"{CONCEPT_TONES[level]}"
            ),
            orientation="horizontal section with internal layout",
        )

    def _diagram_object(
        self,
        concept: Concept,
        index: int,
        level: KnowledgeLevel,
        section: LayoutSection,
        colors: ColorScheme,
    ) -> FiboObject:
        return FiboObject(
            description=(
                f'Supporting diagram for "{concept.name}": {concept.visual_metaphor}. '
                "Precise chart, graph or architecture sketch with annotated axes and components, "
                "labels left to the overlay layer."
            ),
            location=self._location(section),
            relationship=f"Diagram for concept {index + 1}, placed beside its explanatory text",
            relative_size=self._relative_size(section),
            shape_and_color=(
                f"Thin-bordered panel on {container_color(level, index)} with line work in "
                f"{accent_color(level, index)} and highlights in {colors.primary}"
            ),
            texture="clean technical line art, no shading noise",
            appearance_details=f"Numbered figure tag 'Fig. {index + 1}', {CONCEPT_TONES[level]}",
            orientation="panel aligned to its row",
        )

    @staticmethod
    def _connector_object(num_concepts: int, section: LayoutSection, colors: ColorScheme) -> FiboObject:
        return FiboObject(
            description=(
                f"Vertical connecting line with downward-pointing arrows flowing between the {num_concepts} "
                "concept sections, representing the logical progression of ideas"
            ),
            location=f"center, spanning from first to last concept section starting at {section.position.y}",
            relationship="Visual flow indicator showing progression through concepts",
            relative_size=f"thin vertical element, approximately 2% width, {round(section.height_percentage, 2):g}% tall",
            shape_and_color=f"Dashed line in {colors.accent} with small arrow heads at each section boundary",
            texture="simple line graphic, clean and minimal",
            appearance_details="Dashed style at 60% opacity, subtle and not distracting from main content",
            orientation="vertical",
        )

    def _footer_object(
        self, key_finding: str, level: KnowledgeLevel, section: LayoutSection, colors: ColorScheme
    ) -> FiboObject:
        return FiboObject(
            description=(
                f'Footer section with key takeaway callout: "{truncate(key_finding, MAX_FINDING_CHARS)}" and '
                f"source attribution. Professional citation format appropriate for {level.value} level."
            ),
            location=self._location(section),
            relationship="Concluding section summarizing the main insight and providing citation",
            relative_size=self._relative_size(section),
            shape_and_color=f"Rounded rectangle with {self._gradient(colors)}, white text for high contrast",
            texture="flat, solid color with a subtle gradient",
            appearance_details="Space reserved for key finding and citation overlay text, small star icon as decoration",
            orientation="horizontal footer spanning full width",
        )

    def _text_elements(self, inp: GenerationInput, typography: Typography) -> List[TextElement]:
        level = inp.knowledge_level
        texts = [self._title_text(inp, typography), self._subtitle_text(inp, typography)]
        for idx, concept in enumerate(inp.summary.key_concepts):
            texts.extend(self._concept_texts(concept, idx, level, typography))
        texts.append(self._callout_text(inp, typography))
        texts.append(self._citation_text(inp, typography))
        return texts

    @staticmethod
    def _title_text(inp: GenerationInput, typography: Typography) -> TextElement:
        return TextElement(
            text=inp.summary.title.upper(),
            location="top-center",
            size=typography.title_size,
            color="#FFFFFF",
            font=typography.title_font,
            appearance_details=overlay_details(
                TITLE_PT, "Large, bold, all caps title with letter-spacing 0.05em, white on the dark banner."
            ),
        )

    @staticmethod
    def _subtitle_text(inp: GenerationInput, typography: Typography) -> TextElement:
        return TextElement(
            text=inp.summary.one_liner,
            location="top-center, below title",
            size=typography.subtitle_size,
            color="#FFFFFF",
            font=typography.body_font,
            appearance_details=overlay_details(
                SUBTITLE_PT, "Regular weight, sentence case, white at 95% opacity for hierarchy."
            ),
        )

    @staticmethod
    def _concept_texts(concept: Concept, index: int, level: KnowledgeLevel, typography: Typography) -> List[TextElement]:
        heading = TextElement(
            text=f"{index + 1}. {concept.name.upper()}",
            location=f"left-aligned at top of section {index + 1}",
            size=typography.heading_size,
            color=typography.heading_color,
            font=typography.heading_font,
            appearance_details=overlay_details(
                HEADING_PT, "Bold heading, numbered for sequence, all caps, dark text on light background."
            ),
        )
        body = TextElement(
            text=truncate(concept.explanation, MAX_EXPLANATION_CHARS),
            location=f"left-aligned in section {index + 1}, below heading",
            size=body_font_size(concept.explanation, level),
            color=typography.body_color,
            font=typography.body_font,
            appearance_details=overlay_details(
                BODY_PT,
                f"Body text, line height 1.6, max width 80% of section, {EXPLANATION_STYLES[level]}.",
            ),
        )
        return [heading, body]

    @staticmethod
    def _callout_text(inp: GenerationInput, typography: Typography) -> TextElement:
        return TextElement(
            text=f"KEY INSIGHT: {truncate(inp.summary.key_finding, MAX_FINDING_CHARS)}",
            location="bottom-center",
            size=typography.callout_size,
            color="#FFFFFF",
            font=typography.heading_font,
            appearance_details=overlay_details(
                CALLOUT_PT, "Bold callout, ultra-high contrast white text on the dark footer."
            ),
        )

    @staticmethod
    def _citation_text(inp: GenerationInput, typography: Typography) -> TextElement:
        return TextElement(
            text=f"Source: arxiv.org/abs/{inp.arxiv_id}",
            location="bottom-right",
            size=typography.caption_size,
            color="#FFFFFF",
            font=typography.body_font,
            appearance_details=overlay_details(
                CAPTION_PT, "Small caption, white at 80% opacity, professional citation format."
            ),
        )

    @staticmethod
    def _background(colors: ColorScheme, level: KnowledgeLevel) -> str:
        return BACKGROUNDS[level].format(bg=colors.background)

    @staticmethod
    def _lighting(level: KnowledgeLevel) -> Lighting:
        return Lighting(
            conditions="Flat, even lighting typical of graphic design and infographics - no dramatic shadows or highlights",
            direction="Ambient, non-directional, evenly distributed",
            shadows=SHADOWS[level],
        )

    @staticmethod
    def _aesthetics(level: KnowledgeLevel, colors: ColorScheme) -> Aesthetics:
        return Aesthetics(
            composition=COMPOSITIONS[level],
            color_scheme=(
                f"Primary: {colors.primary}, Secondary: {colors.secondary}, Accent: {colors.accent}, "
                f"Background: {colors.background}, Text: {colors.text}. Follows WCAG AA contrast guidelines."
            ),
            mood_atmosphere=MOODS[level],
            preference_score="very high",
            aesthetic_score="very high",
        )

    @staticmethod
    def _context(inp: GenerationInput) -> str:
        lines = [
            f"This is an educational infographic designed for {AUDIENCES[inp.knowledge_level]}.",
            f'The content is based on the research paper "{inp.summary.title}" (arXiv:{inp.arxiv_id}).',
            "Target use cases: social media sharing, presentations, personal learning, and teaching materials.",
        ]
        prefs = inp.user_preferences
        if prefs and prefs.background:
            lines.append(f"The viewer has background in: {prefs.background}.")
        return "\n".join(lines)


def concept_visual_description(concept: Concept, level: KnowledgeLevel) -> str:
    """Level-specific phrasing of how a concept should be drawn."""
    explanation = truncate(concept.explanation, MAX_EXPLANATION_CHARS)
    if level == KnowledgeLevel.BEGINNER:
        return (
            f'Section visualizing "{concept.name}" as a simple metaphor: {concept.visual_metaphor}. '
            "Friendly, cartoon-style illustration with clear shapes and bright colors, immediately "
            "understandable without technical knowledge."
        )
    if level == KnowledgeLevel.INTERMEDIATE:
        return (
            f'Section explaining "{concept.name}" with a labeled technical diagram: {explanation} '
            "Components and connections drawn with professional iconography, arrows and clean lines."
        )
    return (
        f'Section detailing "{concept.name}" with academic precision: {explanation} '
        "Annotated diagrams with mathematical notation, charts or architecture sketches showing methodology details."
    )


def _first(layout: LayoutStrategy, kind: ContentType) -> Optional[LayoutSection]:
    for s in layout.sections:
        if s.content_type == kind:
            return s
    return None
