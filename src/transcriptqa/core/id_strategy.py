from __future__ import annotations

import hashlib
import json
import uuid

from transcriptqa.core.models import TranscriptItem

_CHUNK_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "transcriptqa/chunk-id/v1")


def canonical_chunk_digest(item: TranscriptItem) -> str:
    """SHA-256 over the chunk's content and metadata in a stable key order."""
    meta = item.metadata
    payload = {
        "text": item.text,
        "start": meta.timestamp_start,
        "end": meta.timestamp_end,
        "episode_number": meta.episode_number,
        "episode_title": meta.episode_title or "",
        "date": meta.date.isoformat(),
        "chunk_topic": meta.chunk_topic or "",
        "topics": meta.topics or "",
    }
    encoded = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def chunk_id_for(item: TranscriptItem, namespace: uuid.UUID | None = None) -> str:
    """Deterministic chunk identifier; identical input always maps to the same key."""
    return str(uuid.uuid5(namespace or _CHUNK_ID_NAMESPACE, canonical_chunk_digest(item)))


def new_question_set_id() -> str:
    return str(uuid.uuid4())
