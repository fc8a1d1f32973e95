"""Series orchestration: N consistent images from one base prompt.

:class:`SeriesOrchestrator` validates a series request, composes one prompt
per variation, runs the per-item generations, and merges the results into a
:class:`SeriesGenerationOutcome`.

Execution Strategies
--------------------
``sequential``
    Items are dispatched one after another in request order with a fixed
    pause between calls.  Used when a reference image anchors the series,
    where one-at-a-time generation keeps the subject noticeably more stable.
``parallel``
    All items are started together and merged in completion order.  Each
    result keeps its original ``index``.
``auto`` (default)
    ``sequential`` when a base image is supplied, ``parallel`` otherwise.

Failure Model
-------------
Every item runs inside its own boundary and returns either an image or an
error record; no task touches shared state.  One failed item never aborts
the others.  If every item fails the call raises
:class:`AllGenerationsFailed`; a partial result is returned normally with
both ``images`` and ``errors`` populated.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from imagestudio.core.config import StudioConfig
from imagestudio.core.consistency import (
    build_reference_prompt,
    compose_series_prompt,
    get_consistency_prompt,
)
from imagestudio.core.exceptions import (
    AllGenerationsFailed,
    InvalidQuantity,
    MissingVariations,
)
from imagestudio.core.models import (
    SeriesGenerationOutcome,
    SeriesImageResult,
    SeriesItemError,
    SeriesMetadata,
)

logger = logging.getLogger(__name__)

MIN_SERIES_QUANTITY = 2
MAX_SERIES_QUANTITY = 10
DEFAULT_CONSISTENCY_LEVEL = "moderate"
STRATEGIES = ("auto", "parallel", "sequential")


def parse_quantity(value: Any) -> int:
    """Parse and range-check a requested series size.

    Accepts integers, floats and numeric strings.  Fractional values are
    truncated after the range check.

    Raises:
        InvalidQuantity: If *value* is not a finite number or lies outside
            ``[MIN_SERIES_QUANTITY, MAX_SERIES_QUANTITY]``.
    """
    not_a_number = InvalidQuantity(
        f"Quantity must be a number between {MIN_SERIES_QUANTITY} and {MAX_SERIES_QUANTITY}",
        quantity=value,
    )
    if value is None or isinstance(value, bool):
        raise not_a_number
    try:
        parsed = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise not_a_number from None
    if not math.isfinite(parsed):
        raise not_a_number

    if parsed < MIN_SERIES_QUANTITY or parsed > MAX_SERIES_QUANTITY:
        raise InvalidQuantity(
            f"Quantity must be between {MIN_SERIES_QUANTITY} and {MAX_SERIES_QUANTITY}",
            quantity=value,
        )
    return int(parsed)


@dataclass(frozen=True)
class _ItemOutcome:
    """Result of one series item: exactly one of ``image`` or ``error`` is set."""

    index: int
    image: SeriesImageResult | None = None
    error: SeriesItemError | None = None


class SeriesOrchestrator:
    """Drive the per-item generations of a series through an image client.

    Attributes:
        _image_client: Object exposing ``async generate_one(prompt,
            aspect_ratio, mode, base_image)`` (normally a
            :class:`~imagestudio.core.generation_client.GeminiImageClient`).
        strategy (str): ``auto``, ``parallel`` or ``sequential``.
        sequential_delay (float): Seconds to wait between sequential calls.
        item_timeout (float | None): Optional bound on one vendor call.
    """

    def __init__(
        self,
        image_client: Any,
        *,
        strategy: str = "auto",
        sequential_delay: float = 0.5,
        item_timeout: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown series strategy: {strategy}")
        self._image_client = image_client
        self.strategy = strategy
        self.sequential_delay = sequential_delay
        self.item_timeout = item_timeout
        self._sleep = sleep

    @classmethod
    def from_config(cls, image_client: Any, config: StudioConfig) -> SeriesOrchestrator:
        return cls(
            image_client,
            strategy=config.series_strategy,
            sequential_delay=config.sequential_delay_seconds,
            item_timeout=config.item_timeout_seconds,
        )

    def resolve_strategy(self, base_image: str | None) -> str:
        if self.strategy != "auto":
            return self.strategy
        return "sequential" if base_image else "parallel"

    async def generate_series(
        self,
        base_prompt: str,
        quantity: Any,
        variations: Sequence[str] | None,
        *,
        consistency_level: str | None = None,
        consistency_prompt: str | None = None,
        style_anchor: str | None = None,
        aspect_ratio: str | None = None,
        base_image: str | None = None,
        mode: str | None = None,
    ) -> SeriesGenerationOutcome:
        """Generate one image per variation and merge the results.

        Args:
            base_prompt: Subject shared by every image.
            quantity: Requested series size (2-10).  Only the first
                *quantity* variations are used.
            variations: Per-image variation directives, in display order.
            consistency_level: ``strict``, ``moderate`` or ``loose``.  Used
                when *consistency_prompt* is empty; defaults to ``moderate``.
            consistency_prompt: Explicit directive text sent by the caller.
            style_anchor: Optional shared style description.
            aspect_ratio: Optional aspect ratio for every image.
            base_image: Optional base64 reference image.  Switches the
                prompts to reference mode and the vendor calls to edit mode.
            mode: Explicit generation mode; derived from *base_image* when
                omitted.

        Returns:
            The merged outcome.  ``errors`` is empty on full success.

        Raises:
            MissingVariations: If *variations* is empty.
            InvalidQuantity: If *quantity* is not a number in range.
            InvalidConsistencyLevel: If *consistency_level* is unknown.
            AllGenerationsFailed: If no item produced an image.
        """
        # --- Fail-fast validation: nothing below runs on a bad request ----
        if not variations:
            raise MissingVariations()
        count = parse_quantity(quantity)
        level_directive = get_consistency_prompt(consistency_level or DEFAULT_CONSISTENCY_LEVEL)
        if consistency_prompt and consistency_prompt.strip():
            directive = consistency_prompt.strip()
        else:
            directive = level_directive

        selected = list(variations)[:count]
        item_mode = mode or ("edit" if base_image else "generate")
        prompts = [
            (
                build_reference_prompt(base_prompt, variation, directive, style_anchor)
                if base_image
                else compose_series_prompt(base_prompt, directive, variation, style_anchor)
            )
            for variation in selected
        ]

        strategy = self.resolve_strategy(base_image)
        logger.info(
            "Generating series of %d image(s) (%s, reference image: %s).",
            len(selected),
            strategy,
            bool(base_image),
        )

        run = self._run_sequential if strategy == "sequential" else self._run_parallel
        outcomes = await run(selected, prompts, aspect_ratio, item_mode, base_image)

        images = [outcome.image for outcome in outcomes if outcome.image is not None]
        errors = [outcome.error for outcome in outcomes if outcome.error is not None]

        if not images:
            logger.error("All %d series generations failed.", len(errors))
            raise AllGenerationsFailed(errors)

        if errors:
            logger.warning(
                "Series finished with %d of %d item(s) failed.", len(errors), len(selected)
            )

        return SeriesGenerationOutcome(
            images=images,
            errors=errors,
            metadata=SeriesMetadata(
                base_prompt=base_prompt,
                style_prompt=directive,
                quantity=count,
                successful=len(images),
                failed=len(errors),
                consistency_level=consistency_level,
            ),
        )

    # -- Strategies ---------------------------------------------------------

    async def _run_sequential(self, variations, prompts, aspect_ratio, mode, base_image):
        outcomes: list[_ItemOutcome] = []
        for index, (variation, prompt) in enumerate(zip(variations, prompts)):
            outcomes.append(
                await self._generate_item(index, variation, prompt, aspect_ratio, mode, base_image)
            )
            # Pause between calls only, not after the last one.
            if index < len(variations) - 1 and self.sequential_delay > 0:
                await self._sleep(self.sequential_delay)
        return outcomes

    async def _run_parallel(self, variations, prompts, aspect_ratio, mode, base_image):
        tasks = [
            asyncio.ensure_future(
                self._generate_item(index, variation, prompt, aspect_ratio, mode, base_image)
            )
            for index, (variation, prompt) in enumerate(zip(variations, prompts))
        ]
        # Merge in completion order; every outcome keeps its original index.
        return [await finished for finished in asyncio.as_completed(tasks)]

    async def _generate_item(
        self,
        index: int,
        variation: str,
        prompt: str,
        aspect_ratio: str | None,
        mode: str,
        base_image: str | None,
    ) -> _ItemOutcome:
        try:
            call = self._image_client.generate_one(prompt, aspect_ratio, mode, base_image)
            if self.item_timeout is not None:
                payload = await asyncio.wait_for(call, timeout=self.item_timeout)
            else:
                payload = await call
        except Exception as exc:
            if isinstance(exc, asyncio.TimeoutError) and self.item_timeout is not None:
                message = f"Generation timed out after {self.item_timeout:g} seconds"
            else:
                message = str(exc) or "Generation failed"
            logger.warning("Series item %d (%s) failed: %s", index, variation, message)
            return _ItemOutcome(
                index,
                error=SeriesItemError(index=index, variation=variation, error=message),
            )

        return _ItemOutcome(
            index,
            image=SeriesImageResult(
                image_data=payload.image_data,
                mime_type=payload.mime_type,
                variation=variation,
                index=index,
            ),
        )
