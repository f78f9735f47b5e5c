"""Response-history whitelist followed by a single spam classification call."""

from __future__ import annotations

import logging
from typing import Sequence

from ..store import EmailStore
from .contracts import SpamCheckContract
from .email_models import SpamVerdict
from .llm_client import Deadline, ResilientModelClient
from .prompt_templates import SPAM_CHECK_PROMPT

LOGGER = logging.getLogger(__name__)

WHITELIST_MIN_REPLIES = 2
BODY_PREVIEW_CHARS = 4000


class SpamGate:
    def __init__(self, client: ResilientModelClient, history: EmailStore) -> None:
        self.client = client
        self.history = history

    async def response_count(self, user_id: str, sender: str, reply_to: str | None = None) -> int:
        """Replies the user sent to the sender or, when distinct, the reply-to address."""
        count = await self.history.count_replies_to(user_id, sender) if sender else 0
        if reply_to and reply_to.lower() != (sender or "").lower():
            count = max(count, await self.history.count_replies_to(user_id, reply_to))
        return count

    async def check(
        self,
        user_id: str,
        sender: str,
        subject: str,
        body: str,
        user_names: Sequence[str] = (),
        reply_to: str | None = None,
        deadline: Deadline | None = None,
    ) -> SpamVerdict:
        count = await self.response_count(user_id, sender, reply_to)
        if count >= WHITELIST_MIN_REPLIES:
            LOGGER.info("Spam gate whitelisted %s (%s prior replies)", sender, count)
            return SpamVerdict(is_spam=False, sender_response_count=count, whitelisted=True)

        prompt = SPAM_CHECK_PROMPT.format(
            user_names=", ".join(user_names) or "the user",
            response_count=count,
            sender=sender,
            subject=subject,
            body=body[:BODY_PREVIEW_CHARS],
        )
        result = await self.client.generate_json(prompt, SpamCheckContract, deadline=deadline)
        verdict = SpamVerdict(
            is_spam=result.is_spam,
            indicators=tuple(result.spam_indicators),
            sender_response_count=count,
        )
        LOGGER.info("Spam gate verdict for %s: spam=%s", sender, verdict.is_spam)
        return verdict
