"""
Path progression API endpoints: checklist progress, toggles, level-ups, streaks
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
import structlog

from app.api.deps import get_path_progress_service, require_same_user
from app.models.progression import (
    LevelUpResponse,
    PathStreakResponse,
    ProgressUpdateRequest,
    RewardsPayload,
    StreakHistoryItem,
    TaskProgressResponse,
    TaskToggleRequest,
    VisualStatePayload
)
from app.services.path_progress_service import PathProgressService, TaskProgressResult

logger = structlog.get_logger(__name__)
router = APIRouter()


def progress_response(result: TaskProgressResult) -> TaskProgressResponse:
    entry = result.entry
    increment = result.increment

    rewards = None
    if result.rewards is not None:
        rewards = RewardsPayload(
            coins=result.rewards.coins,
            stars=result.rewards.stars,
            ticket=result.rewards.ticket,
            will=increment.will_gain if increment else 0,
        )

    return TaskProgressResponse(
        path_id=result.path_id,
        date=entry.date,
        status=result.status.value,
        percentage=result.percentage,
        tasks_total=entry.tasks_total,
        tasks_completed=entry.tasks_completed,
        completed_task_ids=entry.completed_task_ids,
        completed_subtask_ids=entry.completed_subtask_ids,
        streak=result.streak,
        streak_incremented=result.streak_incremented,
        milestone_reached=increment.milestone_reached if increment else False,
        sub_milestone_reached=increment.sub_milestone_reached if increment else False,
        rewards=rewards,
        persisted=result.persisted,
    )


@router.post(
    "/users/{user_id}/paths/{path_id}/progress",
    response_model=TaskProgressResponse
)
async def record_progress(
    path_id: str,
    payload: ProgressUpdateRequest,
    user_id: str = Depends(require_same_user),
    service: PathProgressService = Depends(get_path_progress_service)
):
    """
    Write today's checklist state for a path

    The first transition to 100% on a day increments the streak and grants
    any milestone rewards; later toggles the same day never do.
    """
    try:
        result = await service.record_progress(
            user_id,
            path_id,
            payload.tasks_total,
            payload.tasks_completed,
            payload.completed_task_ids,
            payload.completed_subtask_ids,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return progress_response(result)


@router.post(
    "/users/{user_id}/paths/{path_id}/tasks/{task_id}/toggle",
    response_model=TaskProgressResponse
)
async def toggle_task(
    path_id: str,
    task_id: str,
    payload: Optional[TaskToggleRequest] = None,
    user_id: str = Depends(require_same_user),
    service: PathProgressService = Depends(get_path_progress_service)
):
    """Flip a task (or one of its subtasks) in today's checklist"""
    payload = payload or TaskToggleRequest()
    try:
        if payload.subtask_id:
            result = await service.toggle_subtask(
                user_id, path_id, task_id, payload.subtask_id,
                payload.task_ids, payload.subtasks_by_task
            )
        else:
            result = await service.toggle_task(
                user_id, path_id, task_id,
                payload.task_ids, payload.subtasks_by_task
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return progress_response(result)


@router.post(
    "/users/{user_id}/paths/{path_id}/level-up",
    response_model=LevelUpResponse
)
async def level_up(
    path_id: str,
    user_id: str = Depends(require_same_user),
    service: PathProgressService = Depends(get_path_progress_service)
):
    """
    Prestige a path to the next level

    Refused (success=false) when the milestone is not reached or the path
    is already at the top level.
    """
    result = await service.level_up(user_id, path_id)

    history_entry = None
    if result.history_entry is not None:
        history_entry = StreakHistoryItem(**result.history_entry.to_dict())

    return LevelUpResponse(
        path_id=path_id,
        success=result.success,
        previous_level=result.previous_level,
        new_level=result.new_level,
        streak_reset=result.streak_reset,
        reason=result.reason,
        history_entry=history_entry,
    )


@router.get(
    "/users/{user_id}/paths/{path_id}/streak",
    response_model=PathStreakResponse
)
async def get_path_streak(
    path_id: str,
    user_id: str = Depends(require_same_user),
    service: PathProgressService = Depends(get_path_progress_service)
):
    path, summary = await service.get_overview(user_id, path_id)
    visual = summary.visual_state

    return PathStreakResponse(
        path_id=path.id,
        path_name=path.name,
        level=summary.level,
        current_streak=summary.streak,
        max_streak=summary.max_streak,
        total_will=summary.total_will,
        next_milestone=summary.next_milestone,
        xp_progress=summary.xp_progress,
        last_completed_date=path.last_completed_date,
        visual_state=VisualStatePayload(
            stage=visual.stage.value,
            days_until_milestone=visual.days_until_milestone,
            progress_percent=visual.progress_percent,
            is_sub_milestone_day=visual.is_sub_milestone_day,
        ),
        streak_history=[StreakHistoryItem(**h.to_dict()) for h in path.streak_history],
        violations=summary.violations,
    )
