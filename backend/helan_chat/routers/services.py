"""Knowledge base routes used by the chat side

Service listings, text search over scraped pages and the cost simulator.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from helan_chat.core.database import get_db
from helan_chat.core.errors import raise_bad_request
from helan_chat.repositories.content import ScrapedContentRepository, ServiceRepository
from helan_chat.schemas.scraping import (
    CostSimulationRequest,
    CostSimulationResponse,
    PageResponse,
    ServiceResponse,
)
from helan_chat.services.cost_simulator import simulate_costs

router = APIRouter(prefix="/api", tags=["services"])


@router.get("/services", response_model=list[ServiceResponse])
async def list_services(
    session: Annotated[AsyncSession, Depends(get_db)],
    category: str | None = None,
):
    """Active services, optionally of one category, ordered by name"""
    repo = ServiceRepository(session)
    services = await repo.get_by_category(category) if category else await repo.list_active()
    return [ServiceResponse.model_validate(s) for s in services]


@router.get("/content/search", response_model=list[PageResponse])
async def search_content(
    session: Annotated[AsyncSession, Depends(get_db)],
    q: str = Query(..., description="Search text"),
    limit: int = Query(10, ge=1, le=50),
):
    query = q.strip()
    if not query:
        raise_bad_request("empty_query", "Search text must not be empty")
    pages = await ScrapedContentRepository(session).search(query, limit)
    return [PageResponse.model_validate(p) for p in pages]


@router.post("/cost/simulate", response_model=CostSimulationResponse)
async def simulate_cost(
    data: CostSimulationRequest,
    session: Annotated[AsyncSession, Depends(get_db)],
):
    services = await ServiceRepository(session).get_by_ids(data.service_ids)
    return simulate_costs(services, data.user_profile)
