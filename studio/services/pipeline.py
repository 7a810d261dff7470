"""
Design generation pipeline.

Runs one user-initiated generation through a fixed sequence of steps::

    validating -> uploading_reference -> generating -> persisting_result
               -> recording_ledger -> done

Any fatal error moves the run to ``errored``. Failures after the image
exists (re-hosting it, writing the ledger, counting the quota) never undo
the generation: they are collected as warnings on the outcome so callers
can tell a clean success from one with caveats.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_extensions import uuid7

from studio.config import get_settings
from studio.errors import (
    ConfigurationError,
    LedgerError,
    StorageError,
    StudioError,
)
from studio.services.generation_client import GenerationClient, GenerationResult
from studio.services.ledger import GenerationLedger
from studio.services.mockup import MockupLayer, build_mockup
from studio.services.prompts import (
    CONVERSION_SYSTEM_PROMPT,
    Flow,
    GenerationRequest,
    ReferenceImage,
    build_conversion_request,
    build_design_request,
    build_pattern_request,
    concept_prompt,
    render_prompt,
)
from studio.services.quota import GenerationQuota
from studio.services.storage import LocalStorage, content_path, guess_content_type

settings = get_settings()
logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    VALIDATING = "validating"
    UPLOADING_REFERENCE = "uploading_reference"
    GENERATING = "generating"
    PERSISTING_RESULT = "persisting_result"
    RECORDING_LEDGER = "recording_ledger"
    DONE = "done"
    ERRORED = "errored"


@dataclass
class GenerationContext:
    """Who a generation runs for; passed explicitly through every step."""
    db: AsyncSession | None = None
    user_id: str | None = None
    session_id: str = field(default_factory=lambda: str(uuid7()))


@dataclass
class GenerationWarning:
    step: PipelineState
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class GenerationOutcome:
    request: GenerationRequest
    result: GenerationResult
    mockup: MockupLayer | None = None
    record_id: str | None = None
    warnings: list[GenerationWarning] = field(default_factory=list)
    state: PipelineState = PipelineState.DONE

    @property
    def final_url(self) -> str:
        return self.result.final_url

    @property
    def partial(self) -> bool:
        """True when the design exists but some follow-up step failed."""
        return bool(self.warnings)


class DesignPipeline:
    """
    Orchestrates one generation context.

    A pipeline instance belongs to one caller (one open design screen). It
    can be run again after a failed run; every run starts from
    ``validating`` and ``transitions`` records the states of the last run.
    """

    def __init__(
        self,
        client: GenerationClient,
        store: LocalStorage,
        ledger: GenerationLedger,
        quota: GenerationQuota | None = None,
    ):
        self.client = client
        self.store = store
        self.ledger = ledger
        self.quota = quota
        self.state = PipelineState.VALIDATING
        self.transitions: list[PipelineState] = []

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.transitions.append(state)

    async def run_design(
        self,
        context: GenerationContext,
        raw: Mapping[str, Any] | BaseModel,
    ) -> GenerationOutcome:
        """Text-only design flow."""
        return await self._run(context, lambda: build_design_request(raw))

    async def run_pattern(
        self,
        context: GenerationContext,
        raw: Mapping[str, Any] | BaseModel,
        reference: ReferenceImage | None = None,
    ) -> GenerationOutcome:
        """Reference-guided design flow."""
        return await self._run(context, lambda: build_pattern_request(raw, reference))

    async def run_conversion(
        self,
        context: GenerationContext,
        raw: Mapping[str, Any] | BaseModel,
        front: ReferenceImage | None = None,
        back: ReferenceImage | None = None,
    ) -> GenerationOutcome:
        """Garment photo to front/back studio mockup."""
        return await self._run(context, lambda: build_conversion_request(raw, front, back))

    async def _run(self, context: GenerationContext, build) -> GenerationOutcome:
        self.transitions = []
        try:
            # ── Validate ────────────────────────────────────────────
            self._enter(PipelineState.VALIDATING)
            request: GenerationRequest = build()
            # Resolve the mockup up front: a missing mapping must not cost a generation
            mockup = None
            if request.flow is not Flow.CONVERSION:
                mockup = build_mockup(request.garment_type, request.position, None)
            if self.quota is not None and context.db is not None:
                await self.quota.check(context.db, context.user_id)

            # ── Upload reference images ────────────────────────────
            if request.reference_image or request.back_image:
                self._enter(PipelineState.UPLOADING_REFERENCE)
                request = await self._upload_references(request)

            # ── Generate ───────────────────────────────────────────
            self._enter(PipelineState.GENERATING)
            result = await self._generate(request)
        except ConfigurationError:
            self._enter(PipelineState.ERRORED)
            logger.exception("Mockup configuration is incomplete")
            raise
        except StudioError as e:
            self._enter(PipelineState.ERRORED)
            logger.warning("Generation failed in %s: %s", self.transitions[-2].value, e)
            raise
        except Exception:
            self._enter(PipelineState.ERRORED)
            logger.exception("Unexpected error during generation")
            raise

        outcome = GenerationOutcome(request=request, result=result)

        # ── Persist result (best effort) ───────────────────────────
        self._enter(PipelineState.PERSISTING_RESULT)
        try:
            result.stored_url = await self._persist(result.image_url)
        except StorageError as e:
            logger.warning("Keeping generation service URL, re-upload failed: %s", e)
            outcome.warnings.append(GenerationWarning(
                PipelineState.PERSISTING_RESULT,
                "Design generated but could not be saved to storage; using the temporary link.",
            ))

        if mockup is not None:
            outcome.mockup = replace(mockup, overlay_image_url=result.final_url)

        # ── Record ledger (best effort) ────────────────────────────
        self._enter(PipelineState.RECORDING_LEDGER)
        if context.db is not None:
            try:
                outcome.record_id = await self.ledger.record(
                    context.db, context.user_id, request, result, context.session_id
                )
            except LedgerError as e:
                logger.warning("Generation not recorded: %s", e)
                outcome.warnings.append(GenerationWarning(
                    PipelineState.RECORDING_LEDGER,
                    "Image generated but failed to save to history.",
                ))

            if self.quota is not None:
                try:
                    await self.quota.increment(context.db, context.user_id)
                except LedgerError as e:
                    logger.warning("Generation count not updated: %s", e)
                    outcome.warnings.append(GenerationWarning(
                        PipelineState.RECORDING_LEDGER,
                        "Design generated but your generation count could not be updated.",
                    ))

        self._enter(PipelineState.DONE)
        outcome.state = self.state
        return outcome

    async def _upload_references(self, request: GenerationRequest) -> GenerationRequest:
        bucket = settings.inputs_bucket
        updates = {}
        if request.reference_image is not None:
            image = request.reference_image
            path = content_path(image.data, image.content_type, prefix="references")
            updates["reference_image_url"] = await self.store.upload(
                bucket, path, image.data, image.content_type
            )
        if request.back_image is not None:
            image = request.back_image
            path = content_path(image.data, image.content_type, prefix="references")
            updates["back_image_url"] = await self.store.upload(
                bucket, path, image.data, image.content_type
            )
        return replace(request, **updates)

    async def _generate(self, request: GenerationRequest) -> GenerationResult:
        if request.flow is Flow.CONVERSION:
            references = [request.reference_image_url]
            if request.back_image_url:
                references.append(request.back_image_url)
            return await self.client.generate(
                render_prompt(request), references, system_prompt=CONVERSION_SYSTEM_PROMPT
            )

        if request.flow is Flow.PATTERN:
            return await self.client.generate(
                render_prompt(request), [request.reference_image_url]
            )

        if request.concept_pass:
            concept = await self.client.generate(concept_prompt(request.design_text))
            return await self.client.generate(render_prompt(request), [concept.image_url])

        return await self.client.generate(render_prompt(request))

    async def _persist(self, image_url: str) -> str:
        """Re-host a generated image in the designs bucket."""
        if self.store.is_owned(image_url):
            return image_url
        data = await self.store.download(image_url)
        content_type = guess_content_type(image_url)
        path = content_path(data, content_type, prefix="generated")
        return await self.store.upload(settings.designs_bucket, path, data, content_type)
