"""JSON encoding of documents.

Serializing raises on bad input; deserializing returns None for anything
that is not a usable record, so corrupt stored data never breaks reads.
"""

from s3_docstore.errors import SerializationError

import json
import logging


logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json"


def serialize(doc):
    try:
        text = json.dumps(doc, sort_keys=True, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError) as e:
        ident = _ident(doc)
        logger.error("Failed to serialize document %s: %s", ident, e)
        raise SerializationError(
            f"Failed to serialize document {ident}: {e}. "
            "Remove non-serializable values (cycles, functions, objects)."
        ) from e
    return text.encode("utf-8")


def deserialize(data, log=None):
    log = log or logger
    try:
        doc = json.loads(data.decode("utf-8") if isinstance(data, bytes) else data)
    except (UnicodeDecodeError, ValueError) as e:
        log.warning("Failed to deserialize stored content: %s", e)
        return None
    if not is_document(doc):
        log.warning("Stored content is not a valid document (missing type or id)")
        return None
    return doc


def is_document(doc):
    return (
        isinstance(doc, dict)
        and isinstance(doc.get("type"), str)
        and bool(doc["type"])
        and isinstance(doc.get("id"), str)
        and bool(doc["id"])
    )


def _ident(doc):
    if isinstance(doc, dict):
        return f"{doc.get('type')}/{doc.get('id')}"
    return repr(type(doc))
