"""Tool registry inspection and enable/disable endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory
from adapters.rest.schemas import ToolListOut, ToolOut

router = APIRouter(prefix="/api/tools", tags=["tools"])


@router.get("", response_model=ToolListOut)
async def list_tools(factory: ServiceFactory = Depends(get_factory)):
    registry = factory.get_tool_registry()
    return ToolListOut(tools=[ToolOut(**info) for info in registry.tool_info()])


@router.post("/{name}/enable", response_model=ToolOut)
async def enable_tool(name: str, factory: ServiceFactory = Depends(get_factory)):
    registry = factory.get_tool_registry()
    if registry.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Tool not found: {name}")
    registry.enable(name)
    return ToolOut(**registry.get(name).info())


@router.post("/{name}/disable", response_model=ToolOut)
async def disable_tool(name: str, factory: ServiceFactory = Depends(get_factory)):
    registry = factory.get_tool_registry()
    if registry.get(name) is None:
        raise HTTPException(status_code=404, detail=f"Tool not found: {name}")
    registry.disable(name)
    return ToolOut(**registry.get(name).info())
