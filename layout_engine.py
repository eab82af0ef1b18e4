"""Percentage-based poster layout planning."""
from __future__ import annotations

import logging
import math
import re
from typing import Callable, Dict, List, Optional

from errors import InvalidInputError
from models import (
    ContentType,
    KnowledgeLevel,
    LayoutRecommendation,
    LayoutSection,
    LayoutStrategy,
    LayoutType,
    Margins,
    Position,
    ValidationResult,
)

logger = logging.getLogger("paper2poster")

MIN_CONCEPTS = 1
MAX_CONCEPTS = 10
HEIGHT_TOLERANCE = 5.0
DIAGRAM_TAGS = ("mathematical", "visual")


def _pct(value: float) -> str:
    return f"{round(value, 2):g}%"


def _parse_pct(value: str) -> Optional[float]:
    m = re.match(r"\s*(-?\d+(?:\.\d+)?)", value or "")
    return float(m.group(1)) if m else None


def _section(height: float, x: str, y: float, content_type: ContentType) -> LayoutSection:
    return LayoutSection(
        height_percentage=height,
        position=Position(x=x, y=_pct(y)),
        content_type=content_type,
    )


def _header(height: float) -> LayoutSection:
    return LayoutSection(height_percentage=height, position=Position(x="center", y="0%"), content_type=ContentType.HEADER)


def _footer(height: float) -> LayoutSection:
    return _section(height, "center", 100 - height, ContentType.FOOTER)


class LayoutEngine:
    def __init__(self) -> None:
        self._strategies: Dict[KnowledgeLevel, Callable[[int, List[str]], LayoutStrategy]] = {
            KnowledgeLevel.BEGINNER: lambda n, _tags: self.vertical_flow_layout(n),
            KnowledgeLevel.INTERMEDIATE: lambda n, _tags: self.grid_layout(n) if n <= 4 else self.f_pattern_layout(n),
            KnowledgeLevel.ADVANCED: self.academic_layout,
        }

    def calculate_layout(self, num_concepts: int, level: KnowledgeLevel, tags: Optional[List[str]] = None) -> LayoutStrategy:
        """Pick and compute the layout strategy for a concept count and knowledge level."""
        if isinstance(num_concepts, bool) or not isinstance(num_concepts, int):
            raise InvalidInputError(f"Number of concepts must be an integer, got {num_concepts!r}")
        if num_concepts < MIN_CONCEPTS or num_concepts > MAX_CONCEPTS:
            raise InvalidInputError(
                f"Number of concepts must be between {MIN_CONCEPTS} and {MAX_CONCEPTS}, got {num_concepts}"
            )
        try:
            level = KnowledgeLevel(level)
        except ValueError:
            raise InvalidInputError(f"Unknown knowledge level: {level!r}") from None
        return self._strategies[level](num_concepts, list(tags or []))

    def vertical_flow_layout(self, num_concepts: int) -> LayoutStrategy:
        """Top-to-bottom bands with a connector overlay; easiest to follow for beginners."""
        header_h, footer_h = 15.0, 10.0
        body_h = 100 - header_h - footer_h
        concept_h = body_h / num_concepts

        sections = [_header(header_h)]
        for i in range(num_concepts):
            sections.append(_section(concept_h, "center", header_h + i * concept_h, ContentType.CONCEPT))
        sections.append(_section(body_h, "center", header_h, ContentType.CONNECTOR))
        sections.append(_footer(footer_h))

        return LayoutStrategy(
            type=LayoutType.VERTICAL_FLOW,
            sections=sections,
            margins=Margins(top=5, right=10, bottom=5, left=10),
            spacing=2,
        )

    def grid_layout(self, num_concepts: int) -> LayoutStrategy:
        """Side-by-side cells for comparing a handful of concepts."""
        header_h, footer_h = 20.0, 12.0
        body_h = 100 - header_h - footer_h
        columns = min(num_concepts, 2)
        rows = math.ceil(num_concepts / columns)
        cell_w = 100 / columns
        cell_h = body_h / rows

        sections = [_header(header_h)]
        for i in range(num_concepts):
            row, col = divmod(i, columns)
            sections.append(
                _section(cell_h, _pct(col * cell_w + cell_w / 2), header_h + row * cell_h, ContentType.CONCEPT)
            )
        sections.append(_footer(footer_h))

        return LayoutStrategy(
            type=LayoutType.GRID,
            sections=sections,
            margins=Margins(top=5, right=8, bottom=5, left=8),
            spacing=3,
            grid_columns=columns,
            grid_rows=rows,
        )

    def f_pattern_layout(self, num_concepts: int) -> LayoutStrategy:
        """Full-width lead concept followed by a two-column body, following natural eye movement."""
        header_h, footer_h = 18.0, 10.0
        body_h = 100 - header_h - footer_h
        lead_h = body_h * 0.25

        sections = [_header(header_h), _section(lead_h, "center", header_h, ContentType.CONCEPT)]

        remaining = num_concepts - 1
        rows = max(1, math.ceil(remaining / 2))
        cell_h = (body_h * 0.75) / rows
        for i in range(remaining):
            row, col = divmod(i, 2)
            x = "25%" if col == 0 else "75%"
            sections.append(_section(cell_h, x, header_h + lead_h + row * cell_h, ContentType.CONCEPT))
        sections.append(_footer(footer_h))

        return LayoutStrategy(
            type=LayoutType.F_PATTERN,
            sections=sections,
            margins=Margins(top=5, right=8, bottom=5, left=8),
            spacing=2.5,
        )

    def academic_layout(self, num_concepts: int, tags: List[str]) -> LayoutStrategy:
        """Dense layout; two columns pairing concepts with diagrams when the paper is visual or mathematical."""
        header_h, footer_h = 15.0, 8.0
        body_h = 100 - header_h - footer_h
        has_diagrams = any(t in tags for t in DIAGRAM_TAGS)

        sections = [_header(header_h)]
        if has_diagrams and num_concepts >= 4:
            rows = math.ceil(num_concepts / 2)
            cell_h = body_h / rows
            for i in range(num_concepts):
                row, col = divmod(i, 2)
                sections.append(
                    _section(
                        cell_h,
                        "30%" if col == 0 else "70%",
                        header_h + row * cell_h,
                        ContentType.CONCEPT if col == 0 else ContentType.DIAGRAM,
                    )
                )
        else:
            concept_h = body_h / num_concepts
            for i in range(num_concepts):
                sections.append(_section(concept_h, "center", header_h + i * concept_h, ContentType.CONCEPT))
        sections.append(_footer(footer_h))

        return LayoutStrategy(
            type=LayoutType.ACADEMIC,
            sections=sections,
            margins=Margins(top=4, right=5, bottom=4, left=5),
            spacing=1.5,
        )

    @staticmethod
    def total_height(layout: LayoutStrategy) -> float:
        """Vertical coverage of a layout: rows sharing a y offset count once, connector overlays not at all."""
        rows: Dict[str, float] = {}
        for s in layout.sections:
            if s.content_type == ContentType.CONNECTOR:
                continue
            key = s.position.y.strip()
            rows[key] = max(rows.get(key, 0.0), s.height_percentage)
        return sum(rows.values())

    def validate_layout(self, layout: LayoutStrategy) -> ValidationResult:
        errors: List[str] = []
        if not layout.sections:
            errors.append("Layout must have at least one section")
        else:
            total = self.total_height(layout)
            if abs(total - 100) > HEIGHT_TOLERANCE:
                logger.warning("Layout sections sum to %.1f%% (expected ~100%%)", total)

        m = layout.margins
        if m.top + m.bottom >= 50 or m.left + m.right >= 50:
            errors.append("Margins are too large (>50% of space)")

        return ValidationResult(valid=not errors, errors=errors)

    @staticmethod
    def get_position_string(section: LayoutSection) -> str:
        """Coarse anchor label such as ``top-center`` used in prompt text."""
        y = section.position.y
        if y == "0%":
            vertical = "top"
        elif "90" in y or "100" in y:
            vertical = "bottom"
        else:
            vertical = "middle"

        x = section.position.x
        x_val = None if x == "center" else _parse_pct(x)
        if x_val is None:
            horizontal = "center"
        elif x_val < 40:
            horizontal = "left"
        elif x_val > 60:
            horizontal = "right"
        else:
            horizontal = "center"
        return f"{vertical}-{horizontal}"

    @staticmethod
    def calculate_font_size(text_length: int, base_size: float = 16) -> float:
        if text_length > 200:
            return base_size * 0.75
        if text_length > 150:
            return base_size * 0.85
        if text_length < 50:
            return base_size * 1.1
        return base_size

    def get_layout_recommendations(
        self, num_concepts: int, level: KnowledgeLevel, tags: Optional[List[str]] = None
    ) -> LayoutRecommendation:
        """Advisory only; generation always uses calculate_layout."""
        level = KnowledgeLevel(level)
        if level == KnowledgeLevel.BEGINNER:
            return LayoutRecommendation(
                recommended=LayoutType.VERTICAL_FLOW,
                alternatives=[LayoutType.GRID],
                reasoning="Vertical flow is easiest to follow for beginners, with clear top-to-bottom progression",
            )
        if level == KnowledgeLevel.INTERMEDIATE:
            if num_concepts <= 4:
                return LayoutRecommendation(
                    recommended=LayoutType.GRID,
                    alternatives=[LayoutType.F_PATTERN, LayoutType.VERTICAL_FLOW],
                    reasoning="Grid layout allows for easy comparison between concepts for intermediate users",
                )
            return LayoutRecommendation(
                recommended=LayoutType.F_PATTERN,
                alternatives=[LayoutType.GRID, LayoutType.VERTICAL_FLOW],
                reasoning="F-pattern follows natural eye movement for multiple concepts",
            )
        reasoning = "Academic layout maximizes information density for advanced users"
        if any(t in (tags or []) for t in DIAGRAM_TAGS) and num_concepts >= 4:
            reasoning += ", pairing concepts with diagrams for visual or mathematical papers"
        return LayoutRecommendation(
            recommended=LayoutType.ACADEMIC,
            alternatives=[LayoutType.GRID, LayoutType.F_PATTERN],
            reasoning=reasoning,
        )


def body_sections(layout: LayoutStrategy) -> List[LayoutSection]:
    """Concept and diagram sections in layout order; the i-th one carries concept i."""
    return [s for s in layout.sections if s.content_type in (ContentType.CONCEPT, ContentType.DIAGRAM)]
