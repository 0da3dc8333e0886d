# infrastructure/inline_cache.py
"""In-memory store for documents sent inline with a question"""
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import settings


@dataclass
class InlineDocument:
    content: str
    filename: str
    created: float


class InlineDocumentCache:
    """
    Holds inline document content so follow-up questions can reference it by id.

    Bounded: when full, the oldest half is dropped. Entries older than
    `ttl_seconds` are treated as missing and removed on access. Lost on restart.
    """

    ID_PREFIX = "inline_"

    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max(1, max_entries if max_entries is not None else settings.INLINE_CACHE_MAX_ENTRIES)
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.INLINE_CACHE_TTL_SECONDS
        self._clock = clock
        self._entries: Dict[str, InlineDocument] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, document_id: str) -> bool:
        return self.get(document_id) is not None

    def _is_expired(self, entry: InlineDocument) -> bool:
        return self.ttl_seconds > 0 and self._clock() - entry.created > self.ttl_seconds

    def _cleanup_if_full(self):
        """Drop expired entries, then the oldest half if still at the limit"""
        for doc_id in [k for k, v in self._entries.items() if self._is_expired(v)]:
            del self._entries[doc_id]

        if len(self._entries) < self.max_entries:
            return

        by_age = sorted(self._entries.items(), key=lambda x: x[1].created)
        keep = self.max_entries // 2
        for doc_id, _ in by_age[:len(by_age) - keep]:
            del self._entries[doc_id]

    def put(self, content: str, filename: str = "Document") -> str:
        """Store content under a fresh id and return the id."""
        self._cleanup_if_full()
        document_id = f"{self.ID_PREFIX}{uuid.uuid4().hex}"
        self._entries[document_id] = InlineDocument(
            content=content, filename=filename, created=self._clock()
        )
        return document_id

    def get(self, document_id: Optional[str]) -> Optional[InlineDocument]:
        if not document_id:
            return None
        entry = self._entries.get(document_id)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[document_id]
            return None
        return entry

    def remove(self, document_id: str) -> None:
        self._entries.pop(document_id, None)
