from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    local, sep, domain = value.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("must be a valid email address")
    return value


Email = Annotated[str, AfterValidator(normalize_email)]
