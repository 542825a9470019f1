import logging
import time
import datetime as dt
from typing import Optional

logger = logging.getLogger(__name__)


def document_path(teacher_name: str, day: dt.date, filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Storage key for a supporting document: {teacher}/{date}/{timestamp}_{filename}."""
    stamp = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"{teacher_name}/{day.isoformat()}/{stamp}_{filename}"


async def upload_document(
    gateway,
    teacher_name: str,
    day: dt.date,
    filename: str,
    content: bytes,
    content_type: str = "application/octet-stream",
) -> str:
    """Upload a medical certificate or leave document and return its public URL."""
    path = document_path(teacher_name, day, filename)
    await gateway.upload(path, content, content_type)
    logger.info("Uploaded %s (%d bytes)", path, len(content))
    return await gateway.public_url(path)


async def list_documents(gateway, teacher_name: str, day: dt.date) -> list[dict]:
    folder = f"{teacher_name}/{day.isoformat()}"
    files = await gateway.list_files(folder)
    return [
        {"name": f["name"], "url": await gateway.public_url(f"{folder}/{f['name']}")}
        for f in files
        if f.get("name")
    ]
