"""Persistence contracts plus in-memory and JSON-file implementations."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Protocol, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from .vectors.clustering import StyleCluster

LOGGER = logging.getLogger(__name__)

AGGREGATE_KEY = "aggregate"


@dataclass(slots=True)
class StoredEmail:
    """A past reply written by the user, with its two embedding columns."""

    email_id: str
    user_id: str
    text: str
    recipient_address: str
    relationship: str
    sent_date: datetime
    subject: str = ""
    semantic_vector: np.ndarray | None = None
    style_vector: np.ndarray | None = None

    @property
    def has_vectors(self) -> bool:
        return self.semantic_vector is not None and self.style_vector is not None


@dataclass(slots=True)
class CandidateQuery:
    user_id: str
    limit: int = 500
    relationship: str | None = None
    recipient: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    exclude_ids: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class RelationshipInfo:
    type: str
    confidence: float
    method: str = "lookup"


@dataclass(slots=True)
class UserContext:
    """Account-level facts about the person drafts are written for."""

    user_id: str
    account_id: str
    email: str
    display_names: List[str] = field(default_factory=list)
    typed_name: str = ""
    typed_name_pattern: str = ""
    signature: str = ""
    provider_id: str = "gemini"


class EmailStore(Protocol):
    async def fetch_candidates(self, query: CandidateQuery) -> List[StoredEmail]: ...

    async def count_replies_to(self, user_id: str, address: str) -> int: ...

    async def fetch_reply_corpus(self, user_id: str, relationship: str, limit: int) -> List[StoredEmail]: ...

    async def fetch_style_vectors(self, user_id: str, relationship: str) -> List[Tuple[str, np.ndarray]]: ...


class RelationshipDirectory(Protocol):
    async def lookup(self, user_id: str, address: str) -> RelationshipInfo: ...


class AccountDirectory(Protocol):
    async def load_user_context(self, user_id: str, account_id: str) -> UserContext | None: ...


class ClusterStore(Protocol):
    async def load_clusters(self, user_id: str, relationship: str) -> List["StyleCluster"]: ...

    async def save_clusters(self, user_id: str, relationship: str, clusters: Sequence["StyleCluster"]) -> None: ...


class ProfileStore(Protocol):
    def load_patterns(self, user_id: str, target: str) -> Dict | None: ...

    def save_patterns(self, user_id: str, target: str, payload: Dict) -> None: ...

    def clear_patterns(self, user_id: str, target: str | None = None) -> int: ...


class InMemoryCorrespondenceStore:
    """Dict-backed store covering emails, relationships, accounts and clusters."""

    def __init__(self) -> None:
        self._emails: Dict[str, StoredEmail] = {}
        self._relationships: Dict[Tuple[str, str], RelationshipInfo] = {}
        self._accounts: Dict[Tuple[str, str], UserContext] = {}
        self._clusters: Dict[Tuple[str, str], List["StyleCluster"]] = {}

    def add_email(self, stored: StoredEmail) -> None:
        self._emails[stored.email_id] = stored

    def add_account(self, context: UserContext) -> None:
        self._accounts[(context.user_id, context.account_id)] = context

    def set_relationship(self, user_id: str, address: str, info: RelationshipInfo) -> None:
        self._relationships[(user_id, address.lower())] = info

    async def fetch_candidates(self, query: CandidateQuery) -> List[StoredEmail]:
        excluded = set(query.exclude_ids)
        recipient = query.recipient.lower() if query.recipient else None
        matches = [
            stored
            for stored in self._emails.values()
            if stored.user_id == query.user_id
            and stored.has_vectors
            and stored.email_id not in excluded
            and (query.relationship is None or stored.relationship == query.relationship)
            and (recipient is None or stored.recipient_address.lower() == recipient)
            and (query.date_from is None or stored.sent_date >= query.date_from)
            and (query.date_to is None or stored.sent_date <= query.date_to)
        ]
        matches.sort(key=lambda item: item.sent_date, reverse=True)
        return matches[: query.limit]

    async def count_replies_to(self, user_id: str, address: str) -> int:
        target = address.lower()
        return sum(
            1 for stored in self._emails.values() if stored.user_id == user_id and stored.recipient_address.lower() == target
        )

    async def fetch_reply_corpus(self, user_id: str, relationship: str, limit: int) -> List[StoredEmail]:
        corpus = [
            stored
            for stored in self._emails.values()
            if stored.user_id == user_id and (relationship == AGGREGATE_KEY or stored.relationship == relationship)
        ]
        corpus.sort(key=lambda item: item.sent_date, reverse=True)
        return corpus[:limit]

    async def fetch_style_vectors(self, user_id: str, relationship: str) -> List[Tuple[str, np.ndarray]]:
        corpus = await self.fetch_reply_corpus(user_id, relationship, limit=len(self._emails))
        return [(stored.email_id, stored.style_vector) for stored in corpus if stored.style_vector is not None]

    async def lookup(self, user_id: str, address: str) -> RelationshipInfo:
        return self._relationships.get((user_id, address.lower()), RelationshipInfo(type="external", confidence=0.5, method="default"))

    async def load_user_context(self, user_id: str, account_id: str) -> UserContext | None:
        return self._accounts.get((user_id, account_id))

    async def load_clusters(self, user_id: str, relationship: str) -> List["StyleCluster"]:
        return list(self._clusters.get((user_id, relationship), []))

    async def save_clusters(self, user_id: str, relationship: str, clusters: Sequence["StyleCluster"]) -> None:
        self._clusters[(user_id, relationship)] = list(clusters)


class JsonProfileStore:
    """Stores writing-pattern blobs as one JSON file per (user, target).

    Files are replaced atomically, so readers see either the previous blob or the new one.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def load_patterns(self, user_id: str, target: str) -> Dict | None:
        path = self._path(user_id, target)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to load pattern profile %s: %s", path, exc)
            return None

    def save_patterns(self, user_id: str, target: str, payload: Dict) -> None:
        path = self._path(user_id, target)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        LOGGER.debug("Persisted writing patterns for %s/%s", user_id, target)

    def clear_patterns(self, user_id: str, target: str | None = None) -> int:
        if target is not None:
            paths = [self._path(user_id, target)]
        else:
            paths = sorted(self._user_dir(user_id).glob("*.json"))
        removed = 0
        for path in paths:
            if path.exists():
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def _user_dir(self, user_id: str) -> Path:
        return self.root / f"patterns_{_safe_name(user_id)}"

    def _path(self, user_id: str, target: str) -> Path:
        return self._user_dir(user_id) / f"{_safe_name(target)}.json"


def _safe_name(value: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in value)
