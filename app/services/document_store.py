# app/services/document_store.py
import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from starlette.concurrency import run_in_threadpool

from app.core.config import DOCUMENT_STORAGE_DIR
from app.core.exceptions import PersistenceFailure, ValidationIncomplete

logger = logging.getLogger(__name__)


class LocalDocumentStore:
    """Keeps uploaded KYC documents on local disk and hands back an opaque reference."""

    def __init__(self, base_dir: str = DOCUMENT_STORAGE_DIR):
        self.base_dir = Path(base_dir)

    def _write(self, key: str, data: bytes) -> None:
        path = self.base_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def store(self, data: bytes, kind: str, filename: Optional[str] = None) -> str:
        if not data:
            raise ValidationIncomplete(f"Empty upload for {kind}", reasons=[f"{kind} file is empty"])
        clean_name = re.sub(r"[^a-zA-Z0-9.]", "_", filename or "upload")[-100:]
        key = f"docs/{kind}/{uuid.uuid4()}-{clean_name}"
        try:
            await run_in_threadpool(self._write, key, data)
        except OSError as e:
            logger.exception("Failed to store %s document", kind)
            raise PersistenceFailure(f"Could not store {kind} document: {e}")
        logger.info("Stored %s document as %s (%d bytes)", kind, key, len(data))
        return key


document_store = LocalDocumentStore()


def get_document_store() -> LocalDocumentStore:
    return document_store
