"""Order API DTOs."""
from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, Field, AliasChoices


class CreatedOrder(BaseModel):
    # The order backend answers with Mongo-style `_id`
    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    reference: Optional[str] = None
