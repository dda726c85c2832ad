"""Base model for shapes exchanged with a controller."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Pydantic model that speaks camelCase JSON and snake_case Python.

    Input accepts either spelling; ``to_wire`` emits camelCase with ISO
    timestamps and omits unset optional fields.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Ack(WireModel):
    """The ``{success}`` body most commands answer with."""

    success: bool = True
    error: str | None = None
