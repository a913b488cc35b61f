"""JSON envelopes: every payload is keyed by the resource it carries."""

from typing import Any

from pydantic import BaseModel


def envelope(**payload: Any) -> dict[str, Any]:
    return {
        key: value.model_dump(mode="json", by_alias=True)
        if isinstance(value, BaseModel)
        else value
        for key, value in payload.items()
    }
