"""
Chronos reset API endpoints: day-change check, manual reset, dawn summary
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
import structlog

from app.api.deps import get_chronos_manager, require_same_user
from app.domain.models import ChronosResetResult, DailyRecord
from app.models.progression import (
    ChronosResetResponse,
    ChronosStatusResponse,
    DailyRecordPayload,
    DailyRecordsResponse,
    DawnSummaryResponse
)
from app.services.chronos_manager import ChronosManager

logger = structlog.get_logger(__name__)
router = APIRouter()


def record_payload(record: Optional[DailyRecord]) -> Optional[DailyRecordPayload]:
    if record is None:
        return None
    return DailyRecordPayload(**record.to_dict())


def reset_response(result: ChronosResetResult) -> ChronosResetResponse:
    return ChronosResetResponse(
        success=result.success,
        skipped=result.skipped,
        watermark_initialized=result.watermark_initialized,
        paths_processed=result.paths_processed,
        quests_processed=result.quests_processed,
        streaks_reset=result.streaks_reset,
        streaks_maintained=result.streaks_maintained,
        daily_record=record_payload(result.daily_record),
        errors=result.errors,
    )


@router.get(
    "/users/{user_id}/chronos/status",
    response_model=ChronosStatusResponse
)
async def get_chronos_status(
    user_id: str = Depends(require_same_user),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    """
    Current reset state for a user

    Returns the stored watermark, whether a reset is due and whether a
    dawn summary is waiting to be shown.
    """
    status = await chronos.get_status(user_id)
    if status is None:
        raise HTTPException(status_code=404, detail=f"Profile not found: {user_id}")
    return ChronosStatusResponse(**status)


@router.post(
    "/users/{user_id}/chronos/check",
    response_model=ChronosResetResponse
)
async def check_and_reset(
    user_id: str = Depends(require_same_user),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    """
    Run the day-change check; resets at most once per user and day

    Call on app start / foreground. A first call for a profile without a
    watermark only initializes it.
    """
    result = await chronos.check_and_reset(user_id)
    if not result.success:
        logger.warning("Chronos check failed", user_id=user_id, errors=result.errors)
    return reset_response(result)


@router.post(
    "/users/{user_id}/chronos/force-reset",
    response_model=ChronosResetResponse
)
async def force_reset(
    user_id: str = Depends(require_same_user),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    """Run the reset now, ignoring the watermark (testing/operators)"""
    result = await chronos.force_reset(user_id)
    return reset_response(result)


@router.get(
    "/users/{user_id}/chronos/dawn-summary",
    response_model=DawnSummaryResponse
)
async def get_dawn_summary(
    user_id: str = Depends(require_same_user),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    summary = await chronos.get_dawn_summary(user_id)
    return DawnSummaryResponse(
        pending=summary["pending"],
        record=record_payload(summary["record"]),
    )


@router.post(
    "/users/{user_id}/chronos/dawn-summary/dismiss",
    response_model=DawnSummaryResponse
)
async def dismiss_dawn_summary(
    user_id: str = Depends(require_same_user),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    """Clear the pending flag once the summary has been shown"""
    dismissed = await chronos.dismiss_dawn_summary(user_id)
    if not dismissed:
        raise HTTPException(status_code=503, detail="Dawn summary store unavailable")

    summary = await chronos.get_dawn_summary(user_id)
    return DawnSummaryResponse(
        pending=summary["pending"],
        record=record_payload(summary["record"]),
    )


@router.get(
    "/users/{user_id}/daily-records",
    response_model=DailyRecordsResponse
)
async def get_daily_records(
    user_id: str = Depends(require_same_user),
    limit: int = Query(30, ge=1, le=30, description="Most recent records to return"),
    chronos: ChronosManager = Depends(get_chronos_manager)
):
    """Recent daily snapshots, newest first"""
    records = await chronos.get_daily_records(user_id, limit)
    return DailyRecordsResponse(
        user_id=user_id,
        count=len(records),
        records=[record_payload(r) for r in records],
    )
