"""
app/validators package marker.
"""

from app.validators.call_record_validator import (
    CallRecordRowValidator,
    format_display_date,
    validate_call_record_fields,
)

__all__ = [
    "CallRecordRowValidator",
    "format_display_date",
    "validate_call_record_fields",
]
