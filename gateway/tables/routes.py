"""Generic CRUD endpoints over named backend tables.

The table name is taken verbatim from the path and handed to the backend
with no allow-list; row-level access rules are the backend's job.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request

from gateway.db.client import BackendClient, get_backend
from gateway.errors import BackendError, InternalError, NotFound
from gateway.tables.schemas import DeleteResponse, RecordListResponse, RecordResponse

logger = logging.getLogger(__name__)

# Query parameters consumed by the list endpoint; everything else is a filter.
RESERVED_PARAMS = {"select", "limit", "offset"}

# First path segments owned by fixed routes; never treated as table names.
RESERVED_TABLES = {"health", "docs", "redoc", "openapi.json"}


async def reject_reserved_table(table: str) -> None:
    if table in RESERVED_TABLES:
        # Reported like any other unmatched route.
        raise HTTPException(status_code=404)


router = APIRouter(tags=["Tables"], dependencies=[Depends(reject_reserved_table)])


@router.get("/{table}", response_model=RecordListResponse, summary="List records", description="List rows of a table. Extra query parameters are equality filters combined with AND.")
async def list_records(
    table: str,
    request: Request,
    select: str = Query("*"),
    limit: int = Query(100, ge=1),
    offset: int = Query(0, ge=0),
    backend: BackendClient = Depends(get_backend),
):
    filters = {k: v for k, v in request.query_params.items() if k not in RESERVED_PARAMS}
    try:
        rows, total = await backend.list_records(table, select, filters, offset, limit)
    except BackendError as exc:
        logger.error("Error fetching from %s: %s", table, exc.message)
        raise InternalError(exc.message) from exc
    return RecordListResponse(data=rows, total=total)


@router.get("/{table}/{record_id}", response_model=RecordResponse, summary="Get a record by id")
async def get_record(table: str, record_id: str, backend: BackendClient = Depends(get_backend)):
    try:
        row = await backend.get_record(table, record_id)
    except BackendError as exc:
        logger.error("Error fetching %s/%s: %s", table, record_id, exc.message)
        raise InternalError(exc.message) from exc
    if row is None:
        raise NotFound("Record not found")
    return RecordResponse(data=row)


@router.post("/{table}", status_code=201, response_model=RecordResponse, summary="Create a record")
async def create_record(
    table: str,
    fields: dict[str, Any] = Body(...),
    backend: BackendClient = Depends(get_backend),
):
    try:
        row = await backend.insert_record(table, fields)
    except BackendError as exc:
        logger.error("Error creating in %s: %s", table, exc.message)
        raise InternalError(exc.message) from exc
    return RecordResponse(data=row)


@router.put("/{table}/{record_id}", response_model=RecordResponse, summary="Update a record", description="Apply a partial update to the row with the given id.")
async def update_record(
    table: str,
    record_id: str,
    fields: dict[str, Any] = Body(...),
    backend: BackendClient = Depends(get_backend),
):
    try:
        row = await backend.update_record(table, record_id, fields)
    except BackendError as exc:
        logger.error("Error updating %s/%s: %s", table, record_id, exc.message)
        raise InternalError(exc.message) from exc
    if row is None:
        raise NotFound("Record not found")
    return RecordResponse(data=row)


@router.delete("/{table}/{record_id}", response_model=DeleteResponse, summary="Delete a record", description="Deleting an id that does not exist also reports success.")
async def delete_record(table: str, record_id: str, backend: BackendClient = Depends(get_backend)):
    try:
        await backend.delete_record(table, record_id)
    except BackendError as exc:
        logger.error("Error deleting %s/%s: %s", table, record_id, exc.message)
        raise InternalError(exc.message) from exc
    return DeleteResponse()
