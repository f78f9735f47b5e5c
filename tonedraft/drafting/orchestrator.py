"""Drives one incoming email from spam check to a finished draft."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Protocol, Sequence, Tuple

from ..ingest.models import NormalizedEmail
from ..patterns.analyzer import WritingPatternAnalyzer
from ..patterns.style_profile import StyleProfileBuilder
from ..store import RelationshipInfo, UserContext
from ..vectors.example_selector import ExampleSelector
from ..vectors.similarity import DualVectors
from .actions import DraftKind, RecommendedAction, draft_kind
from .contracts import ActionContract, ResponseContract
from .email_models import Draft, DraftState, SpamVerdict
from .llm_client import Deadline, ResilientModelClient
from .prompt_formatter import build_action_prompt, build_response_prompt
from .reply_formatter import (
    build_html_reply,
    build_text_reply,
    compose_body,
    reply_subject,
    resolve_recipients,
)
from .spam_gate import SpamGate
from .typed_name import TypedNameRemover

LOGGER = logging.getLogger(__name__)

SPAM_RELATIONSHIP = RelationshipInfo(type="spam", confidence=0.9, method="spam-gate")


class QueryEncoder(Protocol):
    def encode(self, text: str) -> DualVectors: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def log_transition(subject: str, state: DraftState) -> None:
    LOGGER.debug("Draft %s: %s", subject, state.value)


class DraftOrchestrator:
    """Received -> Parsed -> SpamChecked -> (ActionClassified -> ResponseGenerated) -> draft.

    Any exception escaping a step ends the run; no partial draft is returned.
    """

    def __init__(
        self,
        client: ResilientModelClient,
        spam_gate: SpamGate,
        selector: ExampleSelector,
        encoder: QueryEncoder,
        analyzer: WritingPatternAnalyzer,
        profiles: StyleProfileBuilder,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.spam_gate = spam_gate
        self.selector = selector
        self.encoder = encoder
        self.analyzer = analyzer
        self.profiles = profiles
        self.clock = clock

    async def generate_draft(
        self,
        email: NormalizedEmail,
        user: UserContext,
        deadline: Deadline | None = None,
    ) -> Draft:
        log_transition(email.message_id, DraftState.PARSED)

        verdict = await self.spam_gate.check(
            user.user_id,
            email.sender_address,
            email.subject,
            email.safe_body,
            user_names=user.display_names,
            reply_to=email.reply_to_address or None,
            deadline=deadline,
        )
        log_transition(email.message_id, DraftState.SPAM_CHECKED)
        if verdict.is_spam:
            LOGGER.info("Draft %s: spam, filing silently", email.message_id)
            return self._build(
                email,
                user,
                kind=DraftKind.SILENT,
                action=RecommendedAction.SILENT_SPAM,
                considerations=verdict.indicators,
                relationship=SPAM_RELATIONSHIP,
                verdict=verdict,
                example_count=0,
                body="",
            )

        query = await asyncio.to_thread(self.encoder.encode, email.safe_body)
        selection = await self.selector.select(user.user_id, query, email.sender_address)
        relationship = selection.relationship
        patterns = await self.analyzer.ensure_patterns(user.user_id, relationship.type, known_names=user.display_names)
        profile = await self.profiles.build(user.user_id, relationship.type)

        action = await self.client.generate_json(
            build_action_prompt(email, user, relationship, verdict),
            ActionContract,
            deadline=deadline,
        )
        log_transition(email.message_id, DraftState.ACTION_CLASSIFIED)
        kind = draft_kind(action.recommended_action)
        LOGGER.info("Draft %s: %s -> %s", email.message_id, action.recommended_action.value, kind.value)
        if kind is DraftKind.SILENT:
            return self._build(
                email,
                user,
                kind=kind,
                action=action.recommended_action,
                considerations=action.key_considerations,
                relationship=relationship,
                verdict=verdict,
                example_count=len(selection.examples),
                body="",
            )

        response = await self.client.generate_json(
            build_response_prompt(email, user, relationship, action, selection.examples, patterns, profile),
            ResponseContract,
            deadline=deadline,
        )
        log_transition(email.message_id, DraftState.RESPONSE_GENERATED)
        remover = TypedNameRemover([*user.display_names, user.typed_name], user.typed_name_pattern)
        body = compose_body(remover.remove(response.message), user.typed_name, user.signature)
        return self._build(
            email,
            user,
            kind=kind,
            action=action.recommended_action,
            considerations=action.key_considerations,
            relationship=relationship,
            verdict=verdict,
            example_count=len(selection.examples),
            body=body,
        )

    def _build(
        self,
        email: NormalizedEmail,
        user: UserContext,
        kind: DraftKind,
        action: RecommendedAction,
        considerations: Sequence[str],
        relationship: RelationshipInfo,
        verdict: SpamVerdict,
        example_count: int,
        body: str,
    ) -> Draft:
        recipients = resolve_recipients(email, kind, [user.email])
        silent = kind is DraftKind.SILENT
        state = DraftState.SILENT_DRAFT if silent else DraftState.REPLY_DRAFT
        log_transition(email.message_id, state)
        references: Tuple[str, ...] = tuple(f"<{ref}>" for ref in [*email.references, email.message_id])
        return Draft(
            to=recipients.to,
            cc=recipients.cc,
            subject=reply_subject(email.subject),
            body_text="" if silent else build_text_reply(body, email),
            body_html=None if silent else build_html_reply(body, email),
            in_reply_to=f"<{email.message_id}>",
            references=references,
            recommended_action=action,
            key_considerations=tuple(considerations),
            relationship=relationship,
            spam_verdict=verdict,
            example_count=example_count,
            generated_at=self.clock(),
            state=state,
            from_address=user.email,
            original_message_id=email.message_id,
        )
