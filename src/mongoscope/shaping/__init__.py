"""
Result shaping: size estimates, oversized-payload redaction and exports.
"""

from .export import ExportFormat, content_disposition, documents_to_csv, stream_export
from .redaction import (
    LARGE_PROPERTY_LABEL,
    LARGE_ROW_LABEL,
    PayloadRedactor,
    RedactedField,
    stubs_to_dicts,
)
from .sizes import estimate_byte_size, human_readable_size, serialize_value

__all__ = [
    "ExportFormat",
    "content_disposition",
    "documents_to_csv",
    "stream_export",
    "LARGE_PROPERTY_LABEL",
    "LARGE_ROW_LABEL",
    "PayloadRedactor",
    "RedactedField",
    "stubs_to_dicts",
    "estimate_byte_size",
    "human_readable_size",
    "serialize_value",
]
