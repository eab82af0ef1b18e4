"""Tests for structured prompt building."""

import pytest

from layout_engine import LayoutEngine, body_sections
from models import Concept, ContentType, KnowledgeLevel
from prompt_builder import PromptBuilder, body_font_size, concept_visual_description, truncate
from prompt_validator import validate_structured_prompt
from styles import ACCENT_PALETTES, CONTAINER_SWATCHES, select_color_scheme
from tests.conftest import make_input

LONG_TEXT = "x" * 200


@pytest.fixture
def engine():
    return LayoutEngine()


@pytest.fixture
def builder(engine):
    return PromptBuilder(engine)


def _build(builder, engine, **kwargs):
    inp = make_input(**kwargs)
    layout = engine.calculate_layout(len(inp.summary.key_concepts), inp.knowledge_level, inp.tags)
    return inp, layout, builder.build(inp, layout)


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a" * 150, 150) == "a" * 150
    out = truncate("a" * 151, 150)
    assert len(out) == 150
    assert out.endswith("...")


@pytest.mark.parametrize("level", list(KnowledgeLevel))
def test_build_output_is_valid(builder, engine, level):
    _, _, prompt = _build(builder, engine, level=level.value, n_concepts=4)
    result = validate_structured_prompt(prompt)
    assert result.valid, result.errors


def test_build_is_deterministic(builder, engine):
    inp, layout, first = _build(builder, engine, level="intermediate", n_concepts=5)
    second = builder.build(inp, layout)
    assert first == second
    assert first.model_dump() == second.model_dump()


def test_one_object_per_section(builder, engine):
    _, layout, prompt = _build(builder, engine, level="beginner", n_concepts=3)
    assert len(prompt.objects) == len(layout.sections)
    assert "banner" in prompt.objects[0].description.lower()
    assert "connecting line" in prompt.objects[-2].description.lower()
    assert "footer" in prompt.objects[-1].description.lower()


def test_diagram_sections_carry_their_concept(builder, engine):
    inp, layout, prompt = _build(builder, engine, level="advanced", n_concepts=4, tags=["mathematical"])
    kinds = [s.content_type for s in layout.sections]
    assert ContentType.DIAGRAM in kinds
    assert len(prompt.objects) == len(layout.sections)
    diagram_obj = prompt.objects[kinds.index(ContentType.DIAGRAM)]
    assert inp.summary.key_concepts[1].name in diagram_obj.description


def test_locations_echo_layout(builder, engine):
    _, layout, prompt = _build(builder, engine, level="intermediate", n_concepts=4)
    for section, obj in zip(layout.sections, prompt.objects):
        assert section.position.y in obj.location
        assert f"{round(section.height_percentage, 2):g}%" in obj.relative_size


def test_header_and_footer_use_gradient(builder, engine):
    _, _, prompt = _build(builder, engine, level="intermediate", n_concepts=2)
    colors = select_color_scheme(KnowledgeLevel.INTERMEDIATE)
    gradient = f"from {colors.primary} to {colors.secondary}"
    assert gradient in prompt.objects[0].shape_and_color
    assert gradient in prompt.objects[-1].shape_and_color


def test_concept_colors_cycle(builder, engine):
    _, _, prompt = _build(builder, engine, level="beginner", n_concepts=6)
    concepts = prompt.objects[1:7]
    for i, obj in enumerate(concepts):
        assert CONTAINER_SWATCHES[KnowledgeLevel.BEGINNER][i % 4] in obj.shape_and_color
        palette = ACCENT_PALETTES[KnowledgeLevel.BEGINNER]
        assert palette[i % len(palette)] in obj.shape_and_color


class TestTextRender:
    def test_fixed_order(self, builder, engine):
        inp, _, prompt = _build(builder, engine, level="beginner", n_concepts=3)
        texts = [t.text for t in prompt.text_render]
        assert len(texts) == 2 + 2 * 3 + 2
        assert texts[0] == inp.summary.title.upper()
        assert texts[1] == inp.summary.one_liner
        assert texts[2] == "1. SELF-ATTENTION"
        assert texts[3] == inp.summary.key_concepts[0].explanation
        assert texts[-2].startswith("KEY INSIGHT: ")
        assert texts[-1] == "Source: arxiv.org/abs/1706.03762"

    def test_every_element_is_overlay_with_size(self, builder, engine):
        _, _, prompt = _build(builder, engine, level="advanced", n_concepts=2)
        sizes = ["72pt", "24pt", "28pt", "16pt", "28pt", "16pt", "20pt", "12pt"]
        for el, size in zip(prompt.text_render, sizes):
            assert "OVERLAY" in el.appearance_details
            assert "NOT diffusion-generated" in el.appearance_details
            assert size in el.appearance_details

    def test_key_finding_truncated_in_callout(self, builder, engine):
        inp = make_input()
        data = inp.model_dump()
        data["summary"]["key_finding"] = "f" * 150
        inp = type(inp).model_validate(data)
        layout = engine.calculate_layout(3, inp.knowledge_level)
        callout = builder.build(inp, layout).text_render[-2].text
        assert callout == "KEY INSIGHT: " + "f" * 97 + "..."
        assert inp.summary.key_finding == "f" * 150

    def test_body_size_shrinks_with_explanation_length(self, builder, engine):
        layout = engine.calculate_layout(2, KnowledgeLevel.BEGINNER)
        short = Concept(name="Short", explanation="Attention weighs every token pair.", visual_metaphor="a spotlight")
        long = Concept(name="Long", explanation="z" * 190, visual_metaphor="a long road")
        short_size = builder.build_concept_section(short, 0, KnowledgeLevel.BEGINNER, layout).text_render[1].size
        long_size = builder.build_concept_section(long, 0, KnowledgeLevel.BEGINNER, layout).text_render[1].size
        assert short_size == "19.8px equivalent"
        assert long_size == "15.3px equivalent"

    @pytest.mark.parametrize(
        "level,length,expected",
        [
            (KnowledgeLevel.BEGINNER, 100, "18px equivalent"),
            (KnowledgeLevel.INTERMEDIATE, 100, "16px equivalent"),
            (KnowledgeLevel.ADVANCED, 250, "10.5px equivalent"),
        ],
    )
    def test_body_size_measures_untruncated_text(self, level, length, expected):
        assert body_font_size("w" * length, level) == expected

    def test_user_background_in_context(self, builder, engine):
        _, _, prompt = _build(builder, engine, background="biology")
        assert "biology" in prompt.context


class TestModularSections:
    def test_header_section(self, builder, engine):
        inp, layout, _ = _build(builder, engine, level="beginner", n_concepts=3)
        header = builder.build_header_section(inp, layout)
        assert [t.text for t in header.text_render] == [inp.summary.title.upper(), inp.summary.one_liner]
        assert len(header.objects) == 1
        assert validate_structured_prompt(header).valid

    def test_footer_section(self, builder, engine):
        inp, layout, _ = _build(builder, engine, level="advanced", n_concepts=3)
        footer = builder.build_footer_section(inp, layout)
        assert footer.text_render[0].text.startswith("KEY INSIGHT: ")
        assert footer.text_render[1].text.startswith("Source: ")
        assert validate_structured_prompt(footer).valid

    def test_concept_section_truncates_long_explanation(self, builder, engine):
        layout = engine.calculate_layout(2, KnowledgeLevel.BEGINNER)
        concept = Concept(name="Long", explanation=LONG_TEXT, visual_metaphor="a long road")
        prompt = builder.build_concept_section(concept, 0, KnowledgeLevel.BEGINNER, layout)
        body = prompt.text_render[1].text
        assert len(body) == 150
        assert body == "x" * 147 + "..."
        assert concept.explanation == LONG_TEXT

    def test_concept_section_keeps_short_explanation(self, builder, engine):
        layout = engine.calculate_layout(2, KnowledgeLevel.BEGINNER)
        text = "y" * 150
        concept = Concept(name="Exact", explanation=text, visual_metaphor="a ruler")
        prompt = builder.build_concept_section(concept, 1, KnowledgeLevel.BEGINNER, layout)
        assert prompt.text_render[1].text == text
        assert prompt.text_render[0].text == "2. EXACT"
        assert validate_structured_prompt(prompt).valid

    def test_concept_section_uses_its_layout_slot(self, builder, engine):
        layout = engine.calculate_layout(3, KnowledgeLevel.BEGINNER)
        concept = Concept(name="Third", explanation="The third concept explained.", visual_metaphor="a ladder")
        prompt = builder.build_concept_section(concept, 2, KnowledgeLevel.BEGINNER, layout)
        assert body_sections(layout)[2].position.y in prompt.objects[0].location


@pytest.mark.parametrize(
    "level,marker",
    [
        (KnowledgeLevel.BEGINNER, "cartoon"),
        (KnowledgeLevel.INTERMEDIATE, "labeled technical diagram"),
        (KnowledgeLevel.ADVANCED, "mathematical notation"),
    ],
)
def test_concept_description_per_level(level, marker):
    concept = Concept(name="Idea", explanation="An idea explained at length.", visual_metaphor="a lightbulb")
    assert marker in concept_visual_description(concept, level)
