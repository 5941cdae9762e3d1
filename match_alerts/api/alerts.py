from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from match_alerts.exceptions import PersistenceError
from match_alerts.milestones import Milestone
from match_alerts.scheduler.runner import AlertScheduler

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


class SettingsUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: Optional[bool] = None
    notify_pre_start_far: Optional[bool] = Field(default=None, alias="notifyPreStartFar")
    notify_pre_start_near: Optional[bool] = Field(default=None, alias="notifyPreStartNear")
    notify_start: Optional[bool] = Field(default=None, alias="notifyStart")
    notify_end: Optional[bool] = Field(default=None, alias="notifyEnd")


class TestNotificationRequest(BaseModel):
    milestone: Optional[Milestone] = None


class CheckResponse(BaseModel):
    skipped: Optional[str]
    eventCount: int
    dueCount: int
    dispatched: list
    failed: list
    evicted: int


def get_alert_scheduler(request: Request) -> AlertScheduler:
    scheduler = getattr(request.app.state, "alert_scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Alert scheduler not initialised")
    return scheduler


@router.get("/settings")
def get_alert_settings(scheduler: AlertScheduler = Depends(get_alert_scheduler)):
    return scheduler.get_notification_settings().to_public()


@router.put("/settings")
def update_alert_settings(
    body: SettingsUpdateRequest, scheduler: AlertScheduler = Depends(get_alert_scheduler)
):
    partial = body.model_dump(exclude_none=True)
    try:
        settings = scheduler.update_settings(partial)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return settings.to_public()


@router.post("/check")
def force_check(scheduler: AlertScheduler = Depends(get_alert_scheduler)):
    result = scheduler.force_check_now()
    return CheckResponse(
        skipped=result.skipped,
        eventCount=result.event_count,
        dueCount=result.due_count,
        dispatched=result.dispatched,
        failed=result.failed,
        evicted=result.evicted,
    )


@router.post("/test")
def send_test(
    body: Optional[TestNotificationRequest] = None,
    scheduler: AlertScheduler = Depends(get_alert_scheduler),
):
    milestone = body.milestone if body else None
    return {"sent": scheduler.send_test_notification(milestone)}


@router.get("/stats")
def get_stats(scheduler: AlertScheduler = Depends(get_alert_scheduler)):
    return scheduler.get_stats()


@router.get("/history")
def get_history(
    limit: int = Query(50, ge=1, le=500),
    scheduler: AlertScheduler = Depends(get_alert_scheduler),
):
    try:
        return scheduler.dedup.recent(limit)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
