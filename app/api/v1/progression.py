"""
Progression reference endpoints
"""
from typing import Optional

from fastapi import APIRouter, Query

from app.core.config import settings
from app.domain.milestones import get_milestone_table, validate_milestone_formula, validate_will_cap
from app.models.progression import MilestoneRow, MilestoneTableResponse
from app.services.progression_service import progression_service

router = APIRouter()


@router.get("/progression/milestones", response_model=MilestoneTableResponse)
async def get_milestones(
    archetype: Optional[str] = Query(None, description="Path archetype; default table when omitted")
):
    """Milestone table with rewards and the Will budget checks"""
    archetype = archetype or settings.PATH_ARCHETYPE_DEFAULT
    table = get_milestone_table(archetype)
    service = progression_service.for_archetype(archetype)

    return MilestoneTableResponse(
        archetype=archetype,
        max_total_will=table.max_total_will,
        total_will_from_milestones=table.total_will_from_milestones(),
        formula_valid=validate_milestone_formula(table),
        will_cap_valid=validate_will_cap(table),
        milestones=[MilestoneRow(**row) for row in service.milestone_table_rows()],
    )
