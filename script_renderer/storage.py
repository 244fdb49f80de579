"""Record store and blob store backed by Supabase."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from supabase import Client, create_client

from .errors import NoWorkFound, RecordQueryError, StatusUpdateError, UploadError
from .models import ScriptRecord, ScriptStatus

logger = logging.getLogger("script_renderer.storage")

RECORD_COLUMNS = "id, status, topic, created_at"


class RecordStore(Protocol):
    def latest_with_status(self, status: ScriptStatus) -> ScriptRecord: ...

    def claim(self, record_id: str, expected: ScriptStatus, target: ScriptStatus) -> bool: ...

    def set_status(self, record_id: str, status: ScriptStatus) -> None: ...


class BlobStore(Protocol):
    def upload(self, key: str, data: bytes, *, content_type: str, upsert: bool = True) -> str: ...


def create_supabase_client(url: str, key: str) -> Client:
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    return create_client(url, key)


class SupabaseRecordStore:
    """Script records kept in a Supabase table."""

    def __init__(self, client: Client, table: str = "scripts") -> None:
        self.client = client
        self.table = table

    def latest_with_status(self, status: ScriptStatus) -> ScriptRecord:
        try:
            res = (
                self.client.table(self.table)
                .select(RECORD_COLUMNS)
                .eq("status", status.value)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise RecordQueryError(f"Could not query {self.table}: {exc}") from exc

        rows = res.data or []
        if not rows:
            raise NoWorkFound(f"No {status.value} script")
        return ScriptRecord.model_validate(rows[0])

    def claim(self, record_id: str, expected: ScriptStatus, target: ScriptStatus) -> bool:
        """Move ``record_id`` from ``expected`` to ``target``; False if another worker won."""

        try:
            res = (
                self.client.table(self.table)
                .update({"status": target.value})
                .eq("id", record_id)
                .eq("status", expected.value)
                .execute()
            )
        except Exception as exc:
            raise StatusUpdateError(f"Could not claim {record_id}: {exc}", record_id=record_id) from exc
        return bool(res.data)

    def set_status(self, record_id: str, status: ScriptStatus) -> None:
        try:
            res = (
                self.client.table(self.table)
                .update({"status": status.value})
                .eq("id", record_id)
                .execute()
            )
        except Exception as exc:
            raise StatusUpdateError(
                f"Could not set status of {record_id} to {status.value}: {exc}",
                record_id=record_id,
            ) from exc
        if not res.data:
            raise StatusUpdateError(
                f"Status update for {record_id} matched no rows",
                record_id=record_id,
            )


class SupabaseBlobStore:
    """Rendered videos kept in a Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str = "videos") -> None:
        self.client = client
        self.bucket = bucket

    def upload(self, key: str, data: bytes, *, content_type: str, upsert: bool = True) -> str:
        options: dict[str, Any] = {
            "content-type": content_type,
            "upsert": "true" if upsert else "false",
        }
        try:
            self.client.storage.from_(self.bucket).upload(key, data, file_options=options)
        except Exception as exc:
            raise UploadError(f"Upload of {key} to bucket {self.bucket} failed: {exc}") from exc
        logger.info("Uploaded blob", extra={"bucket": self.bucket, "key": key, "size_bytes": len(data)})
        return key
