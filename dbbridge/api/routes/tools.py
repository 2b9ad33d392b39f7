"""GET /tools, POST /tools/{tool_name}

Tool failures are part of the payload (``isError: true``) and still return
200.  Only a malformed request or an unknown tool name is an HTTP error.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from dbbridge.api.dependencies import GatewayDep
from dbbridge.api.schemas import TextContentModel, ToolCallRequest, ToolResponse
from dbbridge.gateway import TOOL_NAMES
from dbbridge.logging import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/tools", tags=["tools"])


@router.get("", summary="List tool names")
async def list_tools() -> list[str]:
    return list(TOOL_NAMES)


@router.post(
    "/{tool_name}",
    response_model=ToolResponse,
    response_model_by_alias=True,
    summary="Invoke a tool",
)
async def call_tool(
    tool_name: str,
    body: ToolCallRequest,
    gateway: GatewayDep,
) -> ToolResponse:
    if tool_name not in TOOL_NAMES:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown tool '{tool_name}'. Available: {', '.join(TOOL_NAMES)}",
        )

    result = await gateway.call_tool(tool_name, body.model_dump(by_alias=True))
    log.debug("tool_called", tool=tool_name, is_error=result.is_error)
    return ToolResponse(
        content=[TextContentModel(type=c.type, text=c.text) for c in result.content],
        is_error=result.is_error,
    )
