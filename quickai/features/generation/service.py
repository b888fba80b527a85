"""
quickai/features/generation/service.py

Request orchestration for one generation:

    admission -> dispatch (validate + provider) -> persist -> commit usage

Usage is committed only after both the provider call and the insert
succeeded, so a failed generation never consumes free quota.

The insert and the usage commit are writes: they run without an outer
deadline and are bounded by the engine statement timeout and the identity
client's transport timeout, so a reported failure never hides a write that
later lands.
"""

from datetime import datetime, timezone
from typing import Optional

from quickai.core.errors import PersistenceError
from quickai.core.external import call_external
from quickai.core.logging import log_event
from quickai.features.creations.store import CreationStore
from quickai.features.generation.dispatcher import ProviderDispatcher
from quickai.features.generation.variants import GenerationKind, GenerationRequest, get_variant
from quickai.features.quota.gate import QuotaGate
from quickai.models.creation import Creation
from quickai.models.user_context import UserContext


class GenerationService:
    def __init__(
        self,
        gate: QuotaGate,
        dispatcher: ProviderDispatcher,
        store: CreationStore,
    ):
        self.gate = gate
        self.dispatcher = dispatcher
        self.store = store

    async def generate(
        self,
        ctx: UserContext,
        kind: GenerationKind,
        request: GenerationRequest,
        *,
        request_id: Optional[str] = None,
    ) -> Creation:
        """
        Run one generation end to end and return the stored creation.

        Raises:
            PremiumRequiredError / QuotaExceededError: admission denied
            ValidationError / SizeLimitError: bad input, before any provider call
            ProviderError: upstream failure or timeout
            PersistenceError: insert or usage commit failed
        """
        variant = get_variant(kind)
        decision = self.gate.check_admission(ctx, variant.requires_premium)
        decision.raise_for_denial()

        output = await self.dispatcher.dispatch(variant.kind, request)

        creation = Creation(
            user_id=ctx.user_id,
            prompt=output.prompt,
            content=output.content,
            type=output.creation_type,
            publish=output.publish,
            created_at=datetime.now(timezone.utc),
        )
        creation_id = await call_external(
            "creations.insert",
            self.store.insert,
            creation,
            timeout=None,
            error_cls=PersistenceError,
            public_message="Failed to save creation",
        )
        creation = creation.model_copy(update={"id": creation_id})

        usage = None
        if decision.commit_required:
            # One count per stored creation; a replayed commit for it is a no-op
            operation_id = f"{ctx.user_id}:creation:{creation_id}"
            usage = await call_external(
                "usage.commit",
                self.gate.commit_usage,
                ctx,
                operation_id,
                timeout=None,
                error_cls=PersistenceError,
                public_message="Failed to record usage",
            )

        log_event(
            "info",
            "generation.complete",
            request_id=request_id,
            user_id=ctx.user_id,
            creation_id=creation_id,
            event_type=variant.kind.value,
            extra={"plan": ctx.plan_tier.value, "usage": usage},
        )
        return creation
