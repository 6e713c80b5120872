"""
shared/store/codec.py
Decode guard and encoder for namespace documents.

Decoding fails open: a missing key, unparseable JSON or a non-array
document all yield an empty list. A corrupt cache degrades the dashboard
to its empty state instead of blocking it.

Items that fail validation are left out of the typed view. Writers get
them back from `split_collection` and re-encode them untouched, so a
legacy row is never erased by an unrelated write.
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import ValidationError

from shared.models.models import Record

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


def split_collection(raw: Optional[str], model: Type[R], namespace: str) -> Tuple[List[R], List[Any]]:
    """
    Deserialize a namespace document into (valid records, rejected raw items).
    Never raises. A document that is not a JSON array has no items to keep.
    """
    if raw is None or raw == "":
        return [], []

    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Namespace '{namespace}' holds malformed JSON, treating as empty: {e}")
        return [], []

    if not isinstance(document, list):
        logger.warning(
            f"Namespace '{namespace}' holds a {type(document).__name__}, expected an array; treating as empty"
        )
        return [], []

    records: List[R] = []
    rejected: List[Any] = []
    for index, item in enumerate(document):
        try:
            records.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid {model.__name__} at {namespace}[{index}]: "
                f"{e.error_count()} error(s), first: {e.errors()[0]['msg']}"
            )
            rejected.append(item)
    return records, rejected


def decode_collection(raw: Optional[str], model: Type[R], namespace: str) -> List[R]:
    """Deserialize a namespace document into typed records. Never raises."""
    records, _ = split_collection(raw, model, namespace)
    return records


def encode_record(record: Record) -> dict:
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


def encode_collection(records: Sequence[Record], passthrough: Sequence[Any] = ()) -> str:
    """Serialize records to a camelCase JSON array. `passthrough` items are appended as-is."""
    return json.dumps([encode_record(r) for r in records] + list(passthrough), ensure_ascii=False)
