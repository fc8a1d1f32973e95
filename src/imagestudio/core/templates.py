"""Preset prompts for generation, editing and series variations.

Three catalogues are served to the studio through ``GET /api/config``:

- **Prompt templates**: text-to-image presets.  Each holds a ``{subject}``
  placeholder (and optionally ``{context_clause}``) filled in by
  :meth:`PromptTemplate.render`.
- **Edit templates**: instructions for edit mode, grouped by category.
- **Variation templates**: ready-made variation lists for series
  generation, tagged with the aspect they vary.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from imagestudio.core.models import AspectRatio, VariationType


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    prompt: str
    category: str
    aspect_ratio: AspectRatio | None = None

    def render(self, subject: str = "", context: str = "") -> str:
        """Fill the template placeholders.

        ``{context_clause}`` expands to `` in a <context>`` only when a
        context is supplied.
        """
        context_clause = f" in a {context.strip()}" if context and context.strip() else ""
        return self.prompt.format(subject=subject.strip(), context_clause=context_clause)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["aspectRatio"] = data.pop("aspect_ratio")
        return data


@dataclass(frozen=True)
class VariationTemplate:
    name: str
    description: str
    type: VariationType
    variations: tuple[str, ...]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["variations"] = list(self.variations)
        return data


# ---------------------------------------------------------------------------
# Text-to-image presets.
# ---------------------------------------------------------------------------

PROMPT_TEMPLATES: dict[str, PromptTemplate] = {
    "productPhotography": PromptTemplate(
        name="Product Photography",
        description="Studio product shots on a clean background",
        prompt=(
            "A high-resolution, studio-lit product photograph of a {subject} on a pure white "
            "background. Three-point softbox lighting without harsh shadows, camera slightly "
            "elevated to show the product's features. Ultra-realistic, sharp focus. Square format."
        ),
        category="product",
        aspect_ratio="1:1",
    ),
    "heroImage": PromptTemplate(
        name="Hero Banner",
        description="Wide, dramatic images for page headers",
        prompt=(
            "A cinematic, wide-angle hero image featuring {subject}. Dramatic lighting with soft "
            "backlighting creating depth, shallow depth of field, aspirational and eye-catching. "
            "Landscape format."
        ),
        category="hero",
        aspect_ratio="16:9",
    ),
    "minimalistBackground": PromptTemplate(
        name="Minimalist Background",
        description="Clean backgrounds with room for text overlay",
        prompt=(
            "A minimalist composition with a {subject} placed in the corner of the frame. The "
            "rest is an empty off-white canvas leaving generous negative space for text. Soft, "
            "diffused lighting. Square format."
        ),
        category="background",
        aspect_ratio="1:1",
    ),
    "lifestyleShot": PromptTemplate(
        name="Lifestyle Photography",
        description="Products shown in real-world use",
        prompt=(
            "A lifestyle photograph of a {subject} in use{context_clause}. Natural lighting, "
            "authentic setting, photorealistic, warm and inviting. Focus on the product while "
            "showing its practical use."
        ),
        category="lifestyle",
        aspect_ratio="3:2",
    ),
    "socialMediaGraphic": PromptTemplate(
        name="Social Media Post",
        description="Bold graphics for social sharing",
        prompt=(
            "A bold, attention-grabbing social media graphic featuring {subject}. Vibrant colours, "
            "modern design, clean composition with strong visual hierarchy. Square format."
        ),
        category="marketing",
        aspect_ratio="1:1",
    ),
    "productMockup": PromptTemplate(
        name="Product Mockup",
        description="E-commerce product mockups",
        prompt=(
            "A professional e-commerce mockup of a {subject}. Clean, minimalist look with soft "
            "shadows on a neutral surface, high-end commercial photography, focus on details "
            "and textures."
        ),
        category="product",
        aspect_ratio="4:5",
    ),
    "storyTelling": PromptTemplate(
        name="Brand Storytelling",
        description="Narrative imagery for brand stories",
        prompt=(
            "An evocative, narrative photograph telling the story of {subject}. Emotional and "
            "authentic, cinematic framing, warm natural tones, genuine and relatable."
        ),
        category="lifestyle",
        aspect_ratio="16:9",
    ),
}

TEMPLATE_CATEGORIES: dict[str, str] = {
    "product": "Product Photography",
    "lifestyle": "Lifestyle & Context",
    "hero": "Hero & Banners",
    "background": "Backgrounds",
    "marketing": "Marketing Assets",
}

# ---------------------------------------------------------------------------
# Edit-mode presets.  Every instruction starts by pinning the subject so the
# model changes only what the template names.
# ---------------------------------------------------------------------------

_KEEP_SUBJECT = "Keep the main subject exactly as it is, but"

EDIT_TEMPLATES: dict[str, PromptTemplate] = {
    "changeBackground": PromptTemplate(
        name="Change Background",
        description="Replace the background with a studio backdrop",
        prompt=f"{_KEEP_SUBJECT} replace the background with a clean white studio backdrop with soft shadows",
        category="background",
        aspect_ratio="1:1",
    ),
    "outdoorBackground": PromptTemplate(
        name="Outdoor Setting",
        description="Place the subject outdoors",
        prompt=f"{_KEEP_SUBJECT} place it in a natural outdoor setting with greenery and soft daylight",
        category="background",
        aspect_ratio="1:1",
    ),
    "luxuryBackground": PromptTemplate(
        name="Luxury Background",
        description="Add an elegant, high-end background",
        prompt=f"{_KEEP_SUBJECT} add a luxurious background with marble, gold accents and refined lighting",
        category="background",
        aspect_ratio="1:1",
    ),
    "lifestyleScene": PromptTemplate(
        name="Lifestyle Scene",
        description="Show the subject in a lived-in scene",
        prompt=f"{_KEEP_SUBJECT} place it in a realistic modern home scene where it is being used",
        category="background",
        aspect_ratio="3:2",
    ),
    "addReflection": PromptTemplate(
        name="Add Reflection",
        description="Add a subtle reflection",
        prompt=f"{_KEEP_SUBJECT} add a subtle mirror reflection underneath on a glossy surface",
        category="effects",
        aspect_ratio="1:1",
    ),
    "dramaticLighting": PromptTemplate(
        name="Dramatic Lighting",
        description="Cinematic light and shadow",
        prompt=f"{_KEEP_SUBJECT} light it dramatically with strong cinematic shadows and highlights",
        category="effects",
        aspect_ratio="1:1",
    ),
    "goldenHour": PromptTemplate(
        name="Golden Hour Light",
        description="Warm late-afternoon light",
        prompt=f"{_KEEP_SUBJECT} bathe it in warm golden-hour sunlight with soft glow and long shadows",
        category="effects",
        aspect_ratio="16:9",
    ),
    "waterDrops": PromptTemplate(
        name="Water Droplets",
        description="Fresh water droplets on the surface",
        prompt=f"{_KEEP_SUBJECT} add fresh water droplets on its surface",
        category="effects",
        aspect_ratio="1:1",
    ),
    "removeBackground": PromptTemplate(
        name="Remove Background",
        description="Isolate the subject on white",
        prompt=f"{_KEEP_SUBJECT} remove the background completely, leaving pure white",
        category="cleanup",
        aspect_ratio="1:1",
    ),
    "cleanupClutter": PromptTemplate(
        name="Remove Clutter",
        description="Remove background distractions",
        prompt=f"{_KEEP_SUBJECT} remove clutter and unwanted objects from the background",
        category="cleanup",
        aspect_ratio="1:1",
    ),
    "sharpenDetails": PromptTemplate(
        name="Enhance Details",
        description="Sharpen the subject's details",
        prompt="Keep the overall composition but improve sharpness, clarity and fine detail of the main subject",
        category="cleanup",
        aspect_ratio="1:1",
    ),
    "addContext": PromptTemplate(
        name="Add Context Items",
        description="Add complementary props",
        prompt=f"{_KEEP_SUBJECT} add a few tasteful complementary items around it without crowding the scene",
        category="creative",
        aspect_ratio="1:1",
    ),
    "seasonalTheme": PromptTemplate(
        name="Seasonal Theme",
        description="Add seasonal decoration",
        prompt=f"{_KEEP_SUBJECT} add subtle seasonal decorations around it (winter, spring, summer or autumn)",
        category="creative",
        aspect_ratio="1:1",
    ),
    "colorVariant": PromptTemplate(
        name="Color Variant",
        description="Recolour the product",
        prompt=(
            "Keep the exact same product and composition, but change the main product colour to "
            "[specify colour] while keeping every other detail"
        ),
        category="creative",
        aspect_ratio="1:1",
    ),
    "flatLay": PromptTemplate(
        name="Convert to Flat Lay",
        description="Re-stage as an overhead flat lay",
        prompt="Recreate this as an overhead flat lay with complementary items arranged around the main subject",
        category="creative",
        aspect_ratio="1:1",
    ),
}

EDIT_TEMPLATE_CATEGORIES: dict[str, str] = {
    "background": "Backgrounds",
    "effects": "Lighting & Effects",
    "cleanup": "Cleanup & Enhance",
    "creative": "Creative Edits",
}

# ---------------------------------------------------------------------------
# Series variation presets.
# ---------------------------------------------------------------------------

VARIATION_TEMPLATES: dict[str, VariationTemplate] = {
    "productAngles": VariationTemplate(
        name="Product Angles",
        description="Different views of the same product",
        type="angle",
        variations=(
            "front view, centered composition",
            "45-degree angle view, slightly elevated perspective",
            "top-down flat lay view, bird's eye perspective",
            "side profile view with dramatic shadow",
            "three-quarter view showing depth and dimension",
        ),
    ),
    "productContexts": VariationTemplate(
        name="Product Contexts",
        description="The same product in different settings",
        type="context",
        variations=(
            "on a clean white surface, minimal styling",
            "in a lifestyle setting with complementary props",
            "in use by a person, natural interaction",
            "on a rustic wooden surface with natural elements",
            "in a modern minimalist interior",
        ),
    ),
    "heroBackgrounds": VariationTemplate(
        name="Hero Backgrounds",
        description="Varied backgrounds for hero images",
        type="background",
        variations=(
            "minimalist gradient background, soft colour transition",
            "natural outdoor scene with soft focus",
            "modern urban environment, architectural elements",
            "abstract geometric pattern background",
            "textured surface with depth",
        ),
    ),
    "lightingVariations": VariationTemplate(
        name="Lighting Variations",
        description="Different lighting moods",
        type="lighting",
        variations=(
            "soft natural window light, gentle shadows",
            "dramatic studio lighting with strong contrast",
            "golden hour warmth, sunset glow",
            "cool blue morning light",
            "even overhead lighting",
        ),
    ),
    "marketingAngles": VariationTemplate(
        name="Marketing Angles",
        description="Different marketing perspectives",
        type="context",
        variations=(
            "lifestyle shot showing the product's benefits",
            "detail close-up highlighting key features",
            "environmental shot showing scale and context",
            "action shot demonstrating use",
            "arrangement with complementary items",
        ),
    ),
    "seasonalThemes": VariationTemplate(
        name="Seasonal Themes",
        description="The same subject across the seasons",
        type="background",
        variations=(
            "spring theme with fresh blooms and pastels",
            "summer theme with bright sunshine and vivid colours",
            "autumn theme with warm tones and fallen leaves",
            "winter theme with cool tones and light snow",
        ),
    ),
    "moodVariations": VariationTemplate(
        name="Mood Variations",
        description="Different emotional tones",
        type="lighting",
        variations=(
            "energetic and vibrant, high contrast",
            "calm and serene, soft muted tones",
            "luxurious and premium, rich deep colours",
            "fresh and clean, bright airy feel",
            "warm and inviting, cosy atmosphere",
        ),
    ),
    "compositionStyles": VariationTemplate(
        name="Composition Styles",
        description="Different compositional approaches",
        type="angle",
        variations=(
            "centered symmetrical composition",
            "rule of thirds placement, balanced asymmetry",
            "negative space emphasis, minimal elements",
            "tight crop, detail focus",
            "wide shot with environmental context",
        ),
    ),
}


def render_prompt_template(key: str, subject: str, context: str = "") -> str:
    """Render the prompt template *key* for *subject*.

    Raises:
        KeyError: If *key* is not a known prompt template.
    """
    return PROMPT_TEMPLATES[key].render(subject, context)


def get_variation_template(key: str) -> VariationTemplate | None:
    return VARIATION_TEMPLATES.get(key)


def get_variations_by_type(variation_type: str) -> list[VariationTemplate]:
    return [template for template in VARIATION_TEMPLATES.values() if template.type == variation_type]


def get_all_variation_templates() -> list[VariationTemplate]:
    return list(VARIATION_TEMPLATES.values())


def template_catalogue() -> dict:
    """Return every catalogue as JSON-ready data, keyed as the studio expects."""
    return {
        "promptTemplates": {key: t.to_dict() for key, t in PROMPT_TEMPLATES.items()},
        "templateCategories": dict(TEMPLATE_CATEGORIES),
        "editTemplates": {key: t.to_dict() for key, t in EDIT_TEMPLATES.items()},
        "editTemplateCategories": dict(EDIT_TEMPLATE_CATEGORIES),
        "variationTemplates": {key: t.to_dict() for key, t in VARIATION_TEMPLATES.items()},
    }
