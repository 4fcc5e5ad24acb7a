from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from dashboard.models.metric_rows import ServerType


class MetricRowOut(BaseModel):
    """Metric row as shown in the admin table."""

    id: int
    chart_group: str
    variable_name: str
    server_type: ServerType
    table_name: Optional[str] = None
    sql_expression: Optional[str] = None
    production_sql_expression: Optional[str] = None
    value: Optional[float] = None
    last_error: str = ""
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class RowUpdate(BaseModel):
    """Manual edit; only the fields present in the request body are written."""

    chart_group: Optional[str] = None
    variable_name: Optional[str] = None
    server_type: Optional[ServerType] = None
    table_name: Optional[str] = None
    sql_expression: Optional[str] = None
    production_sql_expression: Optional[str] = None
    value: Optional[float] = None
    last_error: Optional[str] = None

    @field_validator("chart_group", "variable_name", "server_type")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v


class QueryRequest(BaseModel):
    server_type: ServerType
    sql: str = Field(..., min_length=1)


class QueryResponse(BaseModel):
    success: bool
    server_type: Optional[ServerType] = None
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    elapsed_ms: int = 0


class ConnectionTestResponse(BaseModel):
    server_type: ServerType
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    elapsed_ms: int = 0


class HealthResponse(BaseModel):
    database: str
    worker_state: str | None
    last_run_status: str | None
