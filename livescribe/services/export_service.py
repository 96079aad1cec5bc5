"""Export of a session snapshot as a JSON document."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..models.session import Session

logger = logging.getLogger(__name__)


class ExportError(Exception):
    """A session snapshot could not be serialized or written."""


def build_export(session: Session, segment_seconds: int, created: Optional[datetime] = None) -> Dict[str, Any]:
    """Assemble the export document for a session.

    Args:
        session: Session to snapshot
        segment_seconds: Configured segment length, used for the duration
        created: Snapshot time; defaults to now (UTC)

    Returns:
        Export document as a dictionary

    Raises:
        ExportError: If the session has no chunks yet
    """
    if not session.transcript:
        raise ExportError("Nothing to export: transcript is empty")

    created = created or datetime.now(timezone.utc)
    return {
        "metadata": {
            "duration": len(session.transcript) * segment_seconds,
            "chunks_count": len(session.transcript),
            "created": created.isoformat(),
        },
        "chunks": [
            {"index": chunk.index, "time": chunk.elapsed_label, "text": chunk.text}
            for chunk in session.transcript
        ],
        "full_text": session.full_text(),
        "topics": [topic.phrase for topic in session.topics],
        "summary": session.summary,
    }


def export_json(session: Session, segment_seconds: int, created: Optional[datetime] = None) -> str:
    """Serialize a session snapshot to JSON text.

    Raises:
        ExportError: If the session is empty or cannot be serialized
    """
    data = build_export(session, segment_seconds, created)
    try:
        content = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ExportError(f"Failed to serialize session: {e}")

    logger.debug(f"Serialized export with {data['metadata']['chunks_count']} chunks")
    return content


def transcript_text(session: Session) -> str:
    """Plain-text copy of the transcript, one paragraph per chunk."""
    return "\n\n".join(session.chunk_texts())
