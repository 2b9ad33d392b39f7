"""API layer — Request and response schemas.

Tool payloads keep the camelCase field names of the tool protocol
(``connectionId``, ``isError``); Python code uses the snake_case names.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ToolCallRequest(BaseModel):
    """POST /tools/{tool_name} — arguments for one tool invocation."""

    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(alias="connectionId", min_length=1)
    type: str | None = Field(
        default=None, description="Backend type; required by connect-database."
    )
    config: dict[str, Any] = Field(
        default_factory=dict, description="Backend settings for connect-database."
    )
    query: str | None = Field(
        default=None, description="Query or command text; required by execute-*."
    )
    params: list[Any] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TextContentModel(BaseModel):
    type: str = "text"
    text: str


class ToolResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContentModel]
    is_error: bool = Field(default=False, alias="isError")


class TablesResponse(BaseModel):
    tables: list[str]


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    uptime_seconds: float
    connections: int
    backends: list[str]


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: Any | None = None
    request_id: str | None = None
