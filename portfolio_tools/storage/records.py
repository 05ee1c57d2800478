"""Generic record shape shared by every keyed store."""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .errors import StorageWriteFailed

__all__ = ["StoredRecord", "now_ms", "encode_record", "PAYLOAD_BLOB", "PAYLOAD_JSON"]

PAYLOAD_BLOB = "blob"
PAYLOAD_JSON = "json"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


@dataclass
class StoredRecord:
    """
    One entry of a keyed store.

    Fields
    ──────
    id          — caller-supplied unique key (UUID, timestamp, file path …)
    label       — human-readable name shown in galleries
    created_at  — epoch milliseconds, stamped at write time
    payload     — bytes (opaque blob) or any JSON-serialisable structure
    meta        — small JSON side-band for adapter-specific scalars
    """
    id:         str
    label:      str
    created_at: int
    payload:    Any
    meta:       Dict[str, Any] = field(default_factory=dict)

    @property
    def is_blob(self) -> bool:
        return isinstance(self.payload, (bytes, bytearray, memoryview))

    @property
    def encoded_size(self) -> int:
        """Bytes this record occupies once serialized."""
        _, payload, meta = encode_record(self)
        return (
            len(self.id.encode("utf-8"))
            + len(self.label.encode("utf-8"))
            + len(payload)
            + len(meta.encode("utf-8"))
        )

    def __str__(self) -> str:
        kind = PAYLOAD_BLOB if self.is_blob else PAYLOAD_JSON
        return f"StoredRecord(id={self.id!r}, label={self.label!r}, kind={kind}, created_at={self.created_at})"


def encode_record(record: StoredRecord) -> Tuple[str, bytes, str]:
    """
    Serialize *record* into (payload_kind, payload_bytes, meta_json).

    Raises:
        StorageWriteFailed: the payload or meta is not JSON-serialisable.
    """
    try:
        if record.is_blob:
            kind, payload = PAYLOAD_BLOB, bytes(record.payload)
        else:
            kind, payload = PAYLOAD_JSON, _dumps(record.payload).encode("utf-8")
        meta = _dumps(record.meta or {})
    except (TypeError, ValueError) as exc:
        raise StorageWriteFailed(
            f"Record {record.id!r} could not be serialized: {exc}",
            details={"id": record.id},
        ) from exc
    return kind, payload, meta


def decode_record(row: Any) -> StoredRecord:
    """Build a StoredRecord from a ``(id, label, created_at, payload_kind, payload, meta)`` row."""
    raw = bytes(row["payload"]) if row["payload"] is not None else b""
    if row["payload_kind"] == PAYLOAD_BLOB:
        payload: Any = raw
    else:
        payload = json.loads(raw.decode("utf-8")) if raw else None
    meta = json.loads(row["meta"]) if row["meta"] else {}
    return StoredRecord(
        id=row["id"],
        label=row["label"],
        created_at=int(row["created_at"]),
        payload=payload,
        meta=meta,
    )
