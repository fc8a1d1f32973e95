"""Consistency-preserving prompt composition for image series.

A series is several images of the same subject, each differing in exactly
one respect (camera angle, lighting, background...).  Image models drift
easily between calls, so every per-image prompt repeats the base prompt, a
fixed consistency directive, an optional style anchor, and finally the one
variation that image should show.

Composition Structure
---------------------
Text-to-image series (no reference image)::

    [Base Prompt]. [Consistency Directive]. Style anchor: [Anchor]. Variation: [Variation].

Reference-image series (a base image anchors the subject)::

    Single-image instruction. Identity-preservation instruction.
    [Consistency Directive]. [Base Prompt]. Apply only this variation: [Variation].
    Leave-everything-else-unchanged instruction. Output instruction.

Segments are joined as period-delimited sentences.  Empty segments (no style
anchor, an empty variation) are omitted entirely, so the output never
contains empty clauses.  All functions here are pure.

Usage
-----
::

    prompt = build_series_prompt(
        "red sneaker",
        "side view",
        "strict",
        style_anchor="studio product photography",
    )
"""

from __future__ import annotations

from imagestudio.core.exceptions import InvalidConsistencyLevel

# ---------------------------------------------------------------------------
# Consistency directives, one per level.  Every level opens with the
# single-image instruction because image models otherwise tend to answer a
# "series" prompt with a grid of panels.
# ---------------------------------------------------------------------------

_SINGLE_IMAGE = "CREATE A SINGLE IMAGE (NOT A GRID, COLLAGE, OR MULTIPLE PANELS)."

CONSISTENCY_PROMPTS: dict[str, str] = {
    "strict": (
        f"{_SINGLE_IMAGE} STRICT CONSISTENCY REQUIRED: show the EXACT SAME person, product or "
        "subject. A person must keep the same face, age and appearance; a product must keep "
        "an identical design, colour and set of features. Do not introduce different people "
        "or products and do not output several variations side by side. Only the camera "
        "angle, lighting or background may change as specified. Subject identity must be "
        "100% consistent across every image in the series."
    ),
    "moderate": (
        f"{_SINGLE_IMAGE} MAINTAIN SUBJECT CONSISTENCY: keep the SAME main person, product or "
        "subject clearly recognisable. A person should be the same individual with consistent "
        "features; a product should be the same item with the same core design. Do not output "
        "a grid or collage. Natural variation in the specified aspect (angle, background, "
        "lighting) is allowed, but the primary subject must remain identifiable as the same "
        "entity."
    ),
    "loose": (
        f"{_SINGLE_IMAGE} SUBJECT CONTINUITY: show the SAME GENERAL person, product or subject "
        "with some natural flexibility. The subject must stay recognisable as the same kind "
        "of person or item. Do not output a grid or collage. Keep a clear thematic connection "
        "so the viewer can tell this is the same subject across the series, even with "
        "creative variation in style and presentation."
    ),
}

CONSISTENCY_LEVELS: tuple[str, ...] = tuple(CONSISTENCY_PROMPTS)

# ---------------------------------------------------------------------------
# Reference-image instructions.  Used whenever a base image is supplied,
# whatever the consistency level.
# ---------------------------------------------------------------------------

_REFERENCE_SINGLE_IMAGE = "CREATE A SINGLE IMAGE (NOT A GRID OR COLLAGE)."
_REFERENCE_IDENTITY = (
    "IMPORTANT: use the reference image as the EXACT subject. Keep the SAME person, object "
    "or product from the reference image and do NOT create a different one."
)
_REFERENCE_UNCHANGED = (
    "Leave every other aspect of the subject and the reference image unchanged."
)
_REFERENCE_OUTPUT = (
    "Output: ONE single image showing the same subject with only the specified variation applied."
)


def get_consistency_prompt(level: str) -> str:
    """Return the consistency directive for *level*.

    Raises:
        InvalidConsistencyLevel: If *level* is not ``strict``, ``moderate``
            or ``loose``.
    """
    if not isinstance(level, str) or level not in CONSISTENCY_PROMPTS:
        raise InvalidConsistencyLevel(level)
    return CONSISTENCY_PROMPTS[level]


def join_sentences(segments: list[str | None]) -> str:
    """Join prompt segments as period-delimited sentences.

    Each segment is stripped and its trailing periods removed before joining,
    so segments that already end in a full stop do not produce ``..``.
    Segments that are empty after stripping are dropped.
    """
    sentences = []
    for segment in segments:
        if not segment:
            continue
        cleaned = segment.strip().rstrip(".").rstrip()
        if cleaned:
            sentences.append(cleaned)
    if not sentences:
        return ""
    return ". ".join(sentences) + "."


def compose_series_prompt(
    base_prompt: str,
    directive: str,
    variation: str = "",
    style_anchor: str | None = None,
) -> str:
    """Compose a text-to-image series prompt from an explicit directive.

    Args:
        base_prompt: What the whole series depicts.
        directive: Consistency directive text (usually from
            :func:`get_consistency_prompt`, but callers may send their own).
        variation: What differs in this one image.  Omitted when empty.
        style_anchor: Optional shared style description.  Omitted when empty.

    Returns:
        The composed prompt.
    """
    return join_sentences(
        [
            base_prompt,
            directive,
            f"Style anchor: {style_anchor.strip()}" if style_anchor and style_anchor.strip() else None,
            f"Variation: {variation.strip()}" if variation and variation.strip() else None,
        ]
    )


def build_series_prompt(
    base_prompt: str,
    variation: str,
    consistency_level: str,
    style_anchor: str | None = None,
) -> str:
    """Build the prompt for one image of a series.

    Raises:
        InvalidConsistencyLevel: If *consistency_level* is unknown.
    """
    return compose_series_prompt(
        base_prompt,
        get_consistency_prompt(consistency_level),
        variation,
        style_anchor,
    )


def build_reference_prompt(
    base_prompt: str,
    variation: str,
    directive: str = "",
    style_anchor: str | None = None,
) -> str:
    """Build the stricter prompt used when a reference image anchors the series.

    The prompt tells the model to produce exactly one image, to keep the
    subject from the reference image, to apply only *variation*, and to leave
    everything else unchanged.
    """
    return join_sentences(
        [
            _REFERENCE_SINGLE_IMAGE,
            _REFERENCE_IDENTITY,
            directive,
            base_prompt,
            f"Style anchor: {style_anchor.strip()}" if style_anchor and style_anchor.strip() else None,
            f"Apply this specific variation ONLY: {variation.strip()}" if variation and variation.strip() else None,
            _REFERENCE_UNCHANGED,
            _REFERENCE_OUTPUT,
        ]
    )
