"""GET /resources/databases/{connection_id}/schema|tables|tables/{table_name}"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from dbbridge.api.dependencies import GatewayDep
from dbbridge.api.schemas import TablesResponse

router = APIRouter(prefix="/resources/databases", tags=["resources"])


@router.get("/{connection_id}/schema", summary="Full schema of a connection")
async def database_schema(connection_id: str, gateway: GatewayDep) -> dict[str, Any]:
    schema = await gateway.database_schema(connection_id)
    return schema.to_dict()


@router.get(
    "/{connection_id}/tables",
    response_model=TablesResponse,
    summary="Table or collection names",
)
async def tables_list(connection_id: str, gateway: GatewayDep) -> TablesResponse:
    return TablesResponse(tables=await gateway.tables_list(connection_id))


@router.get("/{connection_id}/tables/{table_name}", summary="Schema of one table")
async def table_schema(
    connection_id: str, table_name: str, gateway: GatewayDep
) -> dict[str, Any]:
    table = await gateway.table_schema(connection_id, table_name)
    return table.to_dict()
