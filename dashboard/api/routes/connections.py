"""Connection routes - Probe backends and run ad-hoc SQL."""

from fastapi import APIRouter, Depends

from dashboard.api.deps import get_provider
from dashboard.connections.provider import ConnectionProvider
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import ServerType
from dashboard.schemas.api import ConnectionTestResponse, QueryRequest, QueryResponse

router = APIRouter(tags=["connections"])
log = get_logger("connection_routes")


@router.post("/connections/{server_type}/test", response_model=ConnectionTestResponse)
async def test_connection(server_type: ServerType, provider: ConnectionProvider = Depends(get_provider)):
    """Run the backend's probe query and report whether it answered."""
    result = await provider.check(server_type)
    return ConnectionTestResponse(
        server_type=server_type,
        success=result.ok,
        error=result.error.message if result.error else None,
        error_kind=result.error.kind.value if result.error else None,
        elapsed_ms=result.elapsed_ms,
    )


@router.post("/query", response_model=QueryResponse)
async def execute_query(payload: QueryRequest, provider: ConnectionProvider = Depends(get_provider)):
    """
    Execute SQL against one backend and return the raw rows.

    Query failures come back as ``success: false`` with the classified
    error rather than as an HTTP error.
    """
    log.info(f"Ad-hoc query on {payload.server_type.value}")
    result = await provider.execute(payload.server_type, payload.sql, rows=True)
    return QueryResponse(
        success=result.ok,
        server_type=result.server_type,
        rows=result.rows or [],
        error=result.error.message if result.error else None,
        error_kind=result.error.kind.value if result.error else None,
        elapsed_ms=result.elapsed_ms,
    )
