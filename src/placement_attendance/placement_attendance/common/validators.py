from __future__ import annotations

from typing import Optional, Type

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str, *, error: Type[ValidationError] = ValidationError) -> str:
    if not value or not value.strip():
        raise error(f"{field_name} is required")
    return value.strip()


def optional_text(value: Optional[str], *, max_length: int = 500) -> Optional[str]:
    """Trim free text; blank becomes None."""
    text = (value or "").strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"Text must be at most {max_length} characters")
    return text
