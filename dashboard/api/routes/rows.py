"""Row routes - Read and hand-edit metric rows."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from dashboard.api.deps import get_row_store
from dashboard.core.errors import RowNotFoundError
from dashboard.core.logging import get_logger
from dashboard.schemas.api import MetricRowOut, RowUpdate
from dashboard.services.row_store import RowStore

router = APIRouter(prefix="/rows", tags=["rows"])
log = get_logger("row_routes")


@router.get("", response_model=List[MetricRowOut])
def list_rows(store: RowStore = Depends(get_row_store)):
    """All metric rows in execution order."""
    return store.get_all_rows()


@router.get("/{row_id}", response_model=MetricRowOut)
def get_row(row_id: int, store: RowStore = Depends(get_row_store)):
    row = store.get_row(row_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Metric row {row_id} not found")
    return row


@router.patch("/{row_id}", response_model=MetricRowOut)
def update_row(row_id: int, payload: RowUpdate, store: RowStore = Depends(get_row_store)):
    """
    Edit a row by id.

    Safe while a batch runs: the write touches only the submitted fields of
    this one row.
    """
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=422, detail="No fields to update")
    try:
        row = store.update_row(row_id, **fields)
    except RowNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    log.info(f"Row {row_id} edited: {', '.join(sorted(fields))}")
    return row
