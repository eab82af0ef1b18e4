"""Drive one poster request from summary to rendered image(s)."""
from __future__ import annotations

import logging
import random
import time
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from errors import InvalidInputError, PromptValidationError, RendererError, StorageError
from fibo_client import FiboClient
from layout_engine import LayoutEngine
from models import (
    ContentType,
    GenerationInput,
    GenerationMetadata,
    GenerationOutput,
    GenerationStatus,
    ImageSize,
    KnowledgeLevel,
    LayoutStrategy,
    RenderRequest,
    StructuredPrompt,
    StyleVariation,
    validate_generation_input,
)
from prompt_builder import PromptBuilder
from prompt_validator import validate_structured_prompt
from storage_utils import download_and_upload
from styles import STYLE_VARIATION_PRESETS

logger = logging.getLogger("paper2poster")

TQDM_NCOLS = 100
SEED_RANGE = 1_000_000
FOOTER_SEED_OFFSET = 1000

SINGLE_SIZE = ImageSize(width=1024, height=1024)
SECTION_SIZES: Dict[ContentType, ImageSize] = {
    ContentType.HEADER: ImageSize(width=1600, height=300),
    ContentType.CONCEPT: ImageSize(width=1600, height=400),
    ContentType.FOOTER: ImageSize(width=1600, height=200),
}
HEADER_FILE_INDEX = 0
FOOTER_FILE_INDEX = 99
NUM_LAYOUT_PREVIEWS = 3
NUM_STYLE_VARIATIONS = 3

StatusCallback = Callable[[str, GenerationStatus], None]
SectionPlan = Tuple[ContentType, int, Callable[[], StructuredPrompt], int]


def new_request_id() -> str:
    return f"gen_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _error_message(exc: BaseException) -> str:
    msg = " ".join(str(exc).split())
    return msg or type(exc).__name__


class PosterOrchestrator:
    """Sequential generation pipeline: layout, prompt, validate, render, store.

    ``renderer`` is anything with ``generate_poster(RenderRequest) -> RenderResult``
    (normally a ``FiboClient``). ``store`` is optional; when set, each rendered
    image is downloaded and uploaded to ``bucket_id``. Storage problems never fail
    a request. ``rng`` drives seed selection so runs can be reproduced.

    ``previewer`` and ``stylist`` back the optional extra stages asked for through
    ``options.include_layout_previews`` and ``options.include_variations``:
    ``previewer.generate_layout_previews(concepts, level, num_variations) -> [url]``
    runs before rendering and ``stylist.generate_style_variations(base_image_url,
    variations) -> [StyleVariation]`` runs on the finished poster. Both are
    best-effort; a failure is logged and the request carries on without them.
    """

    def __init__(
        self,
        renderer,
        layout_engine: Optional[LayoutEngine] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        store=None,
        bucket_id: str = "posters",
        rng: Optional[random.Random] = None,
        on_status: Optional[StatusCallback] = None,
        show_progress: bool = False,
        previewer=None,
        stylist=None,
    ) -> None:
        self.renderer = renderer
        self.layout_engine = layout_engine or LayoutEngine()
        self.prompt_builder = prompt_builder or PromptBuilder(self.layout_engine)
        self.store = store
        self.bucket_id = bucket_id
        self.rng = rng or random.Random()
        self.on_status = on_status
        self.show_progress = show_progress
        self.previewer = previewer
        self.stylist = stylist

    # -- public entry points ------------------------------------------------

    def generate(self, inp: Union[GenerationInput, Dict[str, Any]], seed: Optional[int] = None) -> GenerationOutput:
        """Generate a poster; never raises.

        Args:
            inp (GenerationInput | dict): Summary plus level, tags and arXiv id.
            seed (int, optional): Base seed; drawn from ``rng`` when omitted.

        Returns:
            GenerationOutput: ``complete`` with the image URL, or ``failed`` with a one-line error.
        """
        request_id = new_request_id()
        start = time.monotonic()
        level: Optional[KnowledgeLevel] = None
        mode: Optional[str] = None
        try:
            data = validate_generation_input(inp)
            level = data.knowledge_level
            mode = data.generation_mode
            logger.info(
                "[%s] Starting %s poster generation (level=%s, concepts=%d)",
                request_id,
                mode,
                level.value,
                len(data.summary.key_concepts),
            )
            if mode == "modular":
                return self._generate_modular(request_id, data, start, seed)
            return self._generate_single(request_id, data, start, seed)
        except Exception as exc:
            logger.exception("[%s] Generation failed", request_id)
            try:
                self._emit(request_id, GenerationStatus.FAILED)
            except Exception:
                logger.warning("[%s] Status callback raised while reporting failure", request_id)
            return GenerationOutput(
                request_id=request_id,
                status=GenerationStatus.FAILED,
                metadata=GenerationMetadata(
                    generation_time_ms=self._elapsed_ms(start),
                    knowledge_level=level,
                    timestamp=_now_iso(),
                    generation_mode=mode,
                ),
                error=_error_message(exc),
            )

    def regenerate(
        self,
        original_input: Union[GenerationInput, Dict[str, Any]],
        new_level: Union[KnowledgeLevel, str],
        seed: Optional[int] = None,
    ) -> GenerationOutput:
        """Run ``generate`` again with only the knowledge level replaced."""
        if isinstance(original_input, GenerationInput):
            data = original_input.model_dump()
            previous = original_input.knowledge_level
        else:
            data = dict(original_input or {})
            previous = data.get("knowledge_level")
        data["knowledge_level"] = new_level
        logger.info("Regenerating with knowledge level: %s (was: %s)", new_level, previous)
        return self.generate(data, seed=seed)

    # -- modes ------------------------------------------------------------

    def _generate_single(
        self, request_id: str, inp: GenerationInput, start: float, seed: Optional[int]
    ) -> GenerationOutput:
        layout = self._layout(request_id, inp)
        previews = self._layout_previews(request_id, inp)

        self._emit(request_id, GenerationStatus.GENERATING_FINAL)
        prompt = self.prompt_builder.build(inp, layout)
        self._check(prompt, "Invalid structured prompt")
        logger.info(
            "[%s] Structured prompt built and validated (estimated render time %ss)",
            request_id,
            FiboClient.estimate_generation_time(prompt),
        )

        fibo_seed = self._base_seed(seed)
        self._emit(request_id, GenerationStatus.RENDERING)
        logger.info("[%s] Rendering with seed %d", request_id, fibo_seed)
        image_url = self._render(prompt, fibo_seed, SINGLE_SIZE)
        file_id = self._upload(request_id, image_url, f"{request_id}_single.png")
        variations = self._style_variations(request_id, inp, image_url)

        elapsed = self._elapsed_ms(start)
        logger.info("[%s] Total generation time: %dms", request_id, elapsed)
        self._emit(request_id, GenerationStatus.COMPLETE)
        return GenerationOutput(
            request_id=request_id,
            status=GenerationStatus.COMPLETE,
            final_image_url=image_url,
            metadata=GenerationMetadata(
                generation_time_ms=elapsed,
                knowledge_level=inp.knowledge_level,
                timestamp=_now_iso(),
                generation_mode="single",
                layout_type=layout.type,
                fibo_seed=fibo_seed,
                fibo_prompt=prompt,
                storage_file_id=file_id,
                layout_previews=previews,
                variations=variations,
            ),
        )

    def _generate_modular(
        self, request_id: str, inp: GenerationInput, start: float, seed: Optional[int]
    ) -> GenerationOutput:
        layout = self._layout(request_id, inp)
        previews = self._layout_previews(request_id, inp)
        base_seed = self._base_seed(seed)
        plan = self._section_plan(inp, layout, base_seed)

        self._emit(request_id, GenerationStatus.GENERATING_FINAL)
        logger.info("[%s] Rendering %d sections with base seed %d", request_id, len(plan), base_seed)

        urls: List[str] = []
        file_ids: List[Optional[str]] = []
        with tqdm(
            plan,
            desc="Sections",
            unit="section",
            ncols=TQDM_NCOLS,
            dynamic_ncols=False,
            disable=not self.show_progress,
        ) as bar:
            for kind, file_index, build, section_seed in bar:
                bar.set_postfix_str(f"{kind.value} {file_index}")
                prompt = build()
                validation = validate_structured_prompt(prompt)
                if not validation.valid:
                    if kind == ContentType.CONCEPT:
                        logger.warning(
                            "[%s] Skipping concept section %d: %s",
                            request_id,
                            file_index,
                            ", ".join(validation.errors),
                        )
                        continue
                    raise PromptValidationError(
                        f"Invalid {kind.value} section prompt: {', '.join(validation.errors)}", validation.errors
                    )

                self._emit(request_id, GenerationStatus.RENDERING)
                logger.info("[%s] Rendering %s section %d (seed %d)", request_id, kind.value, file_index, section_seed)
                image_url = self._render(prompt, section_seed, SECTION_SIZES[kind])
                urls.append(image_url)
                file_ids.append(self._upload(request_id, image_url, f"{request_id}_{kind.value}_{file_index}.png"))

        variations = self._style_variations(request_id, inp, urls[0]) if urls else None

        elapsed = self._elapsed_ms(start)
        logger.info("[%s] Rendered %d/%d sections in %dms", request_id, len(urls), len(plan), elapsed)
        self._emit(request_id, GenerationStatus.COMPLETE)
        return GenerationOutput(
            request_id=request_id,
            status=GenerationStatus.COMPLETE,
            final_image_url=urls[0] if urls else None,
            metadata=GenerationMetadata(
                generation_time_ms=elapsed,
                knowledge_level=inp.knowledge_level,
                timestamp=_now_iso(),
                generation_mode="modular",
                layout_type=layout.type,
                fibo_seed=base_seed,
                storage_file_id=next((f for f in file_ids if f), None),
                section_urls=urls,
                section_file_ids=file_ids,
                layout_previews=previews,
                variations=variations,
            ),
        )

    # -- helpers ----------------------------------------------------------

    def _section_plan(self, inp: GenerationInput, layout: LayoutStrategy, base_seed: int) -> List[SectionPlan]:
        """Header, one entry per concept, footer; seeds are base, base+i+1 and base+1000."""
        builder = self.prompt_builder
        level = inp.knowledge_level
        plan: List[SectionPlan] = [
            (ContentType.HEADER, HEADER_FILE_INDEX, partial(builder.build_header_section, inp, layout), base_seed)
        ]
        for i, concept in enumerate(inp.summary.key_concepts):
            plan.append(
                (
                    ContentType.CONCEPT,
                    i + 1,
                    partial(builder.build_concept_section, concept, i, level, layout),
                    base_seed + i + 1,
                )
            )
        plan.append(
            (
                ContentType.FOOTER,
                FOOTER_FILE_INDEX,
                partial(builder.build_footer_section, inp, layout),
                base_seed + FOOTER_SEED_OFFSET,
            )
        )
        return plan

    def _layout(self, request_id: str, inp: GenerationInput) -> LayoutStrategy:
        self._emit(request_id, GenerationStatus.GENERATING_LAYOUT)
        layout = self.layout_engine.calculate_layout(len(inp.summary.key_concepts), inp.knowledge_level, inp.tags)
        check = self.layout_engine.validate_layout(layout)
        if not check.valid:
            raise InvalidInputError(f"Invalid layout: {', '.join(check.errors)}", check.errors)
        logger.info("[%s] Layout calculated: %s (%d sections)", request_id, layout.type.value, len(layout.sections))
        return layout

    @staticmethod
    def _check(prompt: StructuredPrompt, label: str) -> None:
        validation = validate_structured_prompt(prompt)
        if not validation.valid:
            raise PromptValidationError(f"{label}: {', '.join(validation.errors)}", validation.errors)

    def _render(self, prompt: StructuredPrompt, seed: int, size: ImageSize) -> str:
        result = self.renderer.generate_poster(RenderRequest(structured_prompt=prompt, seed=seed, image_size=size))
        if not result.image_url:
            raise RendererError("FIBO generation completed but no image URL returned")
        return result.image_url

    def _upload(self, request_id: str, image_url: str, filename: str) -> Optional[str]:
        if self.store is None:
            return None
        try:
            file_id = download_and_upload(image_url, self.bucket_id, filename, self.store)
        except StorageError as exc:
            logger.warning("[%s] Storage upload failed for %s: %s", request_id, filename, exc)
            return None
        logger.info("[%s] Stored %s as %s", request_id, filename, file_id)
        return file_id

    def _layout_previews(self, request_id: str, inp: GenerationInput) -> Optional[List[str]]:
        if not (inp.options and inp.options.include_layout_previews):
            return None
        if self.previewer is None:
            logger.warning("[%s] Layout previews requested but no previewer is configured", request_id)
            return None
        try:
            previews = list(
                self.previewer.generate_layout_previews(
                    inp.summary.key_concepts, inp.knowledge_level, NUM_LAYOUT_PREVIEWS
                )
            )
        except Exception as exc:
            logger.warning("[%s] Layout preview generation failed, continuing: %s", request_id, exc)
            return None
        logger.info("[%s] Generated %d layout previews", request_id, len(previews))
        return previews

    def _style_variations(
        self, request_id: str, inp: GenerationInput, image_url: str
    ) -> Optional[List[StyleVariation]]:
        if not (inp.options and inp.options.include_variations):
            return None
        if self.stylist is None:
            logger.warning("[%s] Style variations requested but no stylist is configured", request_id)
            return None
        self._emit(request_id, GenerationStatus.GENERATING_VARIATIONS)
        try:
            variations = [
                StyleVariation.model_validate(v)
                for v in self.stylist.generate_style_variations(
                    image_url, STYLE_VARIATION_PRESETS[:NUM_STYLE_VARIATIONS]
                )
            ]
        except Exception as exc:
            logger.warning("[%s] Style variation generation failed: %s", request_id, exc)
            return None
        logger.info("[%s] Generated %d variations", request_id, len(variations))
        return variations

    def _base_seed(self, seed: Optional[int]) -> int:
        if seed is not None:
            seed = int(seed)
            if not 0 <= seed < SEED_RANGE:
                raise InvalidInputError(f"Seed must be in [0, {SEED_RANGE}), got {seed}")
            return seed
        return self.rng.randrange(SEED_RANGE)

    def _emit(self, request_id: str, status: GenerationStatus) -> None:
        logger.info("[%s] %s", request_id, status.value)
        if self.on_status is not None:
            self.on_status(request_id, status)

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
