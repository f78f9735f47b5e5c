"""Renders examples, patterns and message facts into the prompt templates."""

from __future__ import annotations

from typing import List, Sequence

from ..ingest.models import NormalizedEmail
from ..patterns.models import WritingPatterns
from ..patterns.style_profile import StyleProfile
from ..store import RelationshipInfo, UserContext
from ..vectors.retrieval import Example
from .actions import ACTION_DESCRIPTIONS, RecommendedAction
from .contracts import ActionContract
from .email_models import SpamVerdict
from .prompt_templates import ACTION_ANALYSIS_PROMPT, RESPONSE_GENERATION_PROMPT

EXAMPLE_PREVIEW_CHARS = 1200
MAX_PROMPT_EXAMPLES = 10


def user_names(user: UserContext) -> str:
    return ", ".join(user.display_names) or user.email


def user_position(email: NormalizedEmail, user_email: str) -> str:
    target = user_email.lower()
    if any(entry.address == target for entry in email.to):
        return "the To line"
    if any(entry.address == target for entry in email.cc):
        return "the Cc line"
    return "neither To nor Cc (Bcc or mailing list)"


def format_action_list() -> str:
    return "\n".join(f"- {action.value}: {ACTION_DESCRIPTIONS[action]}" for action in RecommendedAction)


def format_examples(examples: Sequence[Example], limit: int = MAX_PROMPT_EXAMPLES) -> str:
    if not examples:
        return "(no past replies available)"
    blocks: List[str] = []
    for idx, example in enumerate(examples[:limit], start=1):
        source = "direct" if example.metadata.is_direct_correspondence else example.metadata.relationship
        text = example.text[:EXAMPLE_PREVIEW_CHARS]
        blocks.append(f"Example {idx} ({source}, to {example.metadata.recipient}):\n{text}")
    return "\n\n---\n\n".join(blocks)


def format_patterns(patterns: WritingPatterns | None) -> str:
    if patterns is None:
        return "(no writing patterns learned yet)"
    stats = patterns.sentence_stats
    lines = [
        f"- Sentences average {stats.avg_length:.1f} words (median {stats.median_length:.0f}); "
        f"{stats.distribution.short:.0%} short, {stats.distribution.medium:.0%} medium, {stats.distribution.long:.0%} long"
        f" (range {stats.min_length}-{stats.max_length})",
    ]
    if stats.examples:
        lines.append("- Typical sentences: " + " | ".join(f"\"{sentence}\"" for sentence in stats.examples))
    if patterns.paragraph_patterns:
        lines.append(
            "- Structure: " + ", ".join(f"{p.structure} {p.percentage:.0f}%" for p in patterns.paragraph_patterns[:3])
        )
    if patterns.opening_patterns:
        lines.append("- Openings: " + ", ".join(f"\"{p.pattern}\" {p.percentage:.0f}%" for p in patterns.opening_patterns[:3]))
    if patterns.valediction:
        lines.append("- Closings: " + ", ".join(f"\"{p.phrase}\" {p.percentage:.0f}%" for p in patterns.valediction[:3]))
    for pattern in patterns.negative_patterns:
        lines.append(f"- Avoid: {pattern.description}")
    for expression in patterns.unique_expressions[:5]:
        lines.append(f"- Often says \"{expression.phrase}\" ({expression.context})")
    if patterns.response_patterns.question_handling:
        lines.append(f"- Questions: {patterns.response_patterns.question_handling}")
    return "\n".join(lines)


def format_style_profile(profile: StyleProfile | None) -> str:
    if profile is None:
        return "(no style profile yet)"
    return "\n".join(f"- {line}" for line in profile.to_prompt_lines())


def build_action_prompt(
    email: NormalizedEmail,
    user: UserContext,
    relationship: RelationshipInfo,
    verdict: SpamVerdict,
) -> str:
    return ACTION_ANALYSIS_PROMPT.format(
        user_names=user_names(user),
        user_email=user.email,
        action_list=format_action_list(),
        sender=email.sender.display() if email.sender else "(unknown)",
        to=", ".join(entry.display() for entry in email.to) or "(none)",
        cc=", ".join(entry.display() for entry in email.cc) or "(none)",
        recipient_count=len(email.to) + len(email.cc),
        user_position=user_position(email, user.email),
        attachments=", ".join(email.attachment_names) or "none",
        relationship=relationship.type,
        relationship_confidence=relationship.confidence,
        spam_summary=verdict.summary(),
        subject=email.subject or "(no subject)",
        body=email.safe_body,
    )


def build_response_prompt(
    email: NormalizedEmail,
    user: UserContext,
    relationship: RelationshipInfo,
    action: ActionContract,
    examples: Sequence[Example],
    patterns: WritingPatterns | None,
    profile: StyleProfile | None,
) -> str:
    considerations = "\n".join(f"- {item}" for item in action.key_considerations) or "- (none)"
    return RESPONSE_GENERATION_PROMPT.format(
        user_names=user_names(user),
        action=action.recommended_action.value,
        action_description=ACTION_DESCRIPTIONS[action.recommended_action],
        considerations=considerations,
        relationship=relationship.type,
        style_profile=format_style_profile(profile),
        patterns=format_patterns(patterns),
        examples=format_examples(examples),
        sender=email.sender.display() if email.sender else "(unknown)",
        subject=email.subject or "(no subject)",
        body=email.safe_body,
    )
