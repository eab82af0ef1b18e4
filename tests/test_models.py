"""Tests for input schema validation and style lookups."""

import pytest

from errors import InvalidInputError
from models import GenerationInput, KnowledgeLevel, validate_generation_input
from styles import (
    ACCENT_PALETTES,
    COLOR_SCHEMES,
    CONTAINER_SWATCHES,
    TYPOGRAPHY,
    accent_color,
    container_color,
    select_color_scheme,
    select_typography,
)
from tests.conftest import make_input_dict


def test_valid_input_round_trips():
    inp = validate_generation_input(make_input_dict(level="intermediate", n_concepts=4, mode="modular"))
    assert isinstance(inp, GenerationInput)
    assert inp.knowledge_level == KnowledgeLevel.INTERMEDIATE
    assert inp.generation_mode == "modular"


def test_model_instance_passes_through():
    inp = GenerationInput.model_validate(make_input_dict())
    assert validate_generation_input(inp) is inp


def test_default_mode_is_single():
    assert validate_generation_input(make_input_dict()).generation_mode == "single"


@pytest.mark.parametrize(
    "mutate,field",
    [
        (lambda d: d["summary"].update(title=""), "summary.title"),
        (lambda d: d["summary"].update(one_liner="too short"), "summary.one_liner"),
        (lambda d: d["summary"].update(key_finding="tiny"), "summary.key_finding"),
        (lambda d: d["summary"]["key_concepts"][0].update(explanation="short"), "summary.key_concepts.0.explanation"),
        (lambda d: d["summary"]["key_concepts"][0].update(visual_metaphor="x"), "summary.key_concepts.0.visual_metaphor"),
        (lambda d: d.update(tags=[]), "tags"),
        (lambda d: d.update(arxiv_id=""), "arxiv_id"),
        (lambda d: d.update(knowledge_level="expert"), "knowledge_level"),
        (lambda d: d.update(options={"generation_mode": "fast"}), "options.generation_mode"),
    ],
)
def test_field_errors_are_itemised(mutate, field):
    data = make_input_dict()
    mutate(data)
    with pytest.raises(InvalidInputError) as exc:
        validate_generation_input(data)
    assert any(e.startswith(field + ":") for e in exc.value.errors), exc.value.errors
    assert str(exc.value).startswith("Invalid generation input: ")


def test_concept_bounds():
    data = make_input_dict(n_concepts=6)
    assert len(validate_generation_input(data).summary.key_concepts) == 6
    data["summary"]["key_concepts"].append(dict(data["summary"]["key_concepts"][0]))
    with pytest.raises(InvalidInputError):
        validate_generation_input(data)


def test_invalid_input_is_value_error():
    with pytest.raises(ValueError):
        validate_generation_input({"summary": {}})


def test_models_are_frozen():
    inp = validate_generation_input(make_input_dict())
    with pytest.raises(Exception):
        inp.arxiv_id = "other"


class TestStyles:
    @pytest.mark.parametrize("level", list(KnowledgeLevel))
    def test_every_level_has_entries(self, level):
        assert select_color_scheme(level) is COLOR_SCHEMES[level]
        assert select_typography(level) is TYPOGRAPHY[level]
        assert len(CONTAINER_SWATCHES[level]) == 4
        assert ACCENT_PALETTES[level]

    def test_string_level(self):
        assert select_color_scheme("beginner").primary == "#4299E1"

    def test_container_cycles_by_four(self):
        swatches = CONTAINER_SWATCHES[KnowledgeLevel.INTERMEDIATE]
        assert container_color(KnowledgeLevel.INTERMEDIATE, 5) == swatches[1]

    def test_accent_cycles_by_palette_length(self):
        palette = ACCENT_PALETTES[KnowledgeLevel.ADVANCED]
        assert len(palette) == 2
        assert accent_color(KnowledgeLevel.ADVANCED, 3) == palette[1]
