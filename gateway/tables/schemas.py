"""Response schemas for the generic table endpoints."""

from typing import Any

from pydantic import BaseModel

Record = dict[str, Any]


class RecordResponse(BaseModel):
    success: bool = True
    data: Record


class RecordListResponse(BaseModel):
    success: bool = True
    data: list[Record]
    total: int | None


class DeleteResponse(BaseModel):
    success: bool = True
