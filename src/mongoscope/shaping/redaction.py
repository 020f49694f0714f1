"""
Oversized-payload redaction for collection views.

Documents leave the process in two passes:

1. Field pass - any field whose estimated size exceeds ``max_field_size``
   is replaced by a RedactedField stub.
2. Document pass - if the document is *still* larger than
   ``max_document_size``, every remaining field except ``_id`` that is above
   ``FIELD_FLOOR`` bytes is replaced as well.

The order matters: the document pass sees the output of the field pass, and
``_id`` is exempt only in the document pass. Stubs are never re-redacted, so
running the redactor on its own output changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from .sizes import estimate_byte_size, human_readable_size, serialize_value

logger = logging.getLogger("mongoscope.shaping.redaction")

LARGE_PROPERTY_LABEL = "*** LARGE PROPERTY ***"
LARGE_ROW_LABEL = "*** LARGE ROW ***"

# Fields at or below this estimate survive the document pass
FIELD_FLOOR = 200
PREVIEW_LENGTH = 25

IDENTITY_FIELD = "_id"


@dataclass(frozen=True)
class RedactedField:
    """Stub standing in for an oversized value in a response."""

    attribute: str
    display: str
    human_size: str
    max_size: str
    preview: str
    rough_size: int
    document_id: Any = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PayloadRedactor:
    """
    Two-pass redactor bounded by a field threshold and a document threshold.

    Example:
        ```python
        redactor = PayloadRedactor(max_field_size=100 * 1024, max_document_size=1024 * 1024)
        shaped = [redactor.redact(doc) for doc in page]
        ```
    """

    def __init__(self, max_field_size: int, max_document_size: int):
        self.max_field_size = max_field_size
        self.max_document_size = max_document_size

    def _stub(self, name: str, value: Any, size: int, label: str, limit: int, doc_id: Any) -> RedactedField:
        return RedactedField(
            attribute=name,
            display=label,
            human_size=human_readable_size(size),
            max_size=human_readable_size(limit),
            preview=serialize_value(value)[:PREVIEW_LENGTH],
            rough_size=size,
            document_id=doc_id,
        )

    def redact(self, document: dict[str, Any]) -> dict[str, Any]:
        """Return a shaped copy of ``document``; the input is not modified."""
        shaped = dict(document)
        doc_id = document.get(IDENTITY_FIELD)

        for name, value in document.items():
            if isinstance(value, RedactedField):
                continue
            size = estimate_byte_size(value)
            if size > self.max_field_size:
                shaped[name] = self._stub(
                    name, value, size, LARGE_PROPERTY_LABEL, self.max_field_size, doc_id
                )

        if estimate_byte_size(shaped) > self.max_document_size:
            logger.debug(f"[REDACT] Document {doc_id!r} above row limit after field pass")
            for name, value in list(shaped.items()):
                if name == IDENTITY_FIELD or isinstance(value, RedactedField):
                    continue
                size = estimate_byte_size(value)
                if size > FIELD_FLOOR:
                    shaped[name] = self._stub(
                        name, value, size, LARGE_ROW_LABEL, self.max_document_size, doc_id
                    )

        return shaped


def stubs_to_dicts(document: dict[str, Any]) -> dict[str, Any]:
    """Replace RedactedField stubs by plain dicts for serialization."""
    return {
        name: value.to_dict() if isinstance(value, RedactedField) else value
        for name, value in document.items()
    }
