"""Agent catalog API router."""

from __future__ import annotations

from fastapi import APIRouter, status

from ..agents.catalog import AGENTS, CAPABILITIES
from ..agents.schemas import AgentCapability, AgentInfo
from ..conversations.schemas import ApiResponse
from ..errors import SupportDeskError

router = APIRouter(prefix="/api/agents", tags=["agents"])


@router.get("", response_model=ApiResponse[list[AgentInfo]])
def list_agents() -> ApiResponse[list[AgentInfo]]:
    return ApiResponse[list[AgentInfo]](data=AGENTS)


@router.get("/{agent_type}/capabilities", response_model=ApiResponse[AgentCapability])
def get_capabilities(agent_type: str) -> ApiResponse[AgentCapability]:
    capability = CAPABILITIES.get(agent_type)
    if capability is None:
        raise SupportDeskError(
            f'Agent type "{agent_type}" not found',
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
        )
    return ApiResponse[AgentCapability](data=capability)
