"""Tests for imagestudio.core.templates — prompt, edit and variation presets."""

from __future__ import annotations

import pytest

from imagestudio.core.models import ASPECT_RATIOS
from imagestudio.core.templates import (
    EDIT_TEMPLATE_CATEGORIES,
    EDIT_TEMPLATES,
    PROMPT_TEMPLATES,
    TEMPLATE_CATEGORIES,
    VARIATION_TEMPLATES,
    get_all_variation_templates,
    get_variation_template,
    get_variations_by_type,
    render_prompt_template,
    template_catalogue,
)


class TestPromptTemplates:
    def test_every_template_has_a_subject_slot(self):
        for template in PROMPT_TEMPLATES.values():
            assert "{subject}" in template.prompt

    def test_categories_known(self):
        for template in PROMPT_TEMPLATES.values():
            assert template.category in TEMPLATE_CATEGORIES
        for template in EDIT_TEMPLATES.values():
            assert template.category in EDIT_TEMPLATE_CATEGORIES

    def test_aspect_ratios_supported(self):
        for template in [*PROMPT_TEMPLATES.values(), *EDIT_TEMPLATES.values()]:
            assert template.aspect_ratio in ASPECT_RATIOS

    def test_render(self):
        prompt = render_prompt_template("productPhotography", " red sneaker ")
        assert "product photograph of a red sneaker on a pure white" in prompt
        assert "{" not in prompt

    def test_render_with_context(self):
        prompt = render_prompt_template("lifestyleShot", "coffee mug", "sunny kitchen")
        assert "coffee mug in use in a sunny kitchen." in prompt

    def test_render_without_context(self):
        prompt = render_prompt_template("lifestyleShot", "coffee mug")
        assert "coffee mug in use." in prompt

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            render_prompt_template("nope", "x")


class TestVariationTemplates:
    def test_lookup(self):
        template = get_variation_template("productAngles")
        assert template.type == "angle"
        assert len(template.variations) >= 2

    def test_lookup_unknown(self):
        assert get_variation_template("nope") is None

    def test_by_type(self):
        lighting = get_variations_by_type("lighting")
        assert {t.name for t in lighting} == {"Lighting Variations", "Mood Variations"}
        assert get_variations_by_type("nope") == []

    def test_all(self):
        assert len(get_all_variation_templates()) == len(VARIATION_TEMPLATES)

    def test_every_template_fits_a_series(self):
        for template in VARIATION_TEMPLATES.values():
            assert 2 <= len(template.variations) <= 10


def test_catalogue_is_json_ready():
    catalogue = template_catalogue()
    assert set(catalogue) == {
        "promptTemplates",
        "templateCategories",
        "editTemplates",
        "editTemplateCategories",
        "variationTemplates",
    }
    product = catalogue["promptTemplates"]["productPhotography"]
    assert product["aspectRatio"] == "1:1"
    assert "aspect_ratio" not in product
    assert isinstance(catalogue["variationTemplates"]["productAngles"]["variations"], list)
