from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PatchModel(ApiModel):
    """Partial update: only fields sent by the client are applied."""

    # Fields that may be cleared by sending null.
    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict:
        return {
            k: v
            for k, v in self.model_dump(exclude_unset=True).items()
            if v is not None or k in self.nullable_fields
        }
