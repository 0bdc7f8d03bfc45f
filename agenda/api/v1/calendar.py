# agenda/api/v1/calendar.py

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings
from agenda.core.auth.security import get_current_user_id
from agenda.core.calendar import (
    CalendarService,
    Event,
    EventIn,
    EventStoreError,
    MutationResult,
    Window,
    get_event_store,
    real_id,
)
from agenda.core.calendar.changes import get_change_channel
from agenda.core.calendar.constants import event_type_label, recurrence_label
from agenda.core.calendar.export import export_csv
from agenda.core.calendar import view as projector
from agenda.db.base import get_async_db_session

router = APIRouter(prefix="/v1/calendar", tags=["calendar"])
log = logging.getLogger(__name__)


# --- Зависимости ---
async def get_calendar_service(db: AsyncSession = Depends(get_async_db_session)) -> CalendarService:
    return CalendarService(
        get_event_store(db),
        changes=get_change_channel(),
        max_steps=settings.RECURRENCE_MAX_STEPS,
    )


# --- Pydantic Модели для Ответа API ---
class OccurrenceOut(Event):
    """Вхождение в окне + поля для отображения."""

    event_id: str = Field(..., description="Id of the stored base record")
    generated: bool = Field(..., description="True for generated occurrences of a series")
    type_label: str
    recurrence_label: Optional[str] = None


class DayCellOut(BaseModel):
    day: date
    in_month: bool
    is_today: bool
    events: List[OccurrenceOut]
    overflow: int


class TimelineBlockOut(BaseModel):
    event: OccurrenceOut
    top: float
    height: float


class CalendarViewOut(BaseModel):
    view: Literal["month", "week", "day"]
    window: Window
    occurrences: List[OccurrenceOut]
    weeks: Optional[List[List[DayCellOut]]] = None
    all_day: Optional[List[OccurrenceOut]] = None
    timeline: Optional[List[TimelineBlockOut]] = None


def _out(event: Event) -> OccurrenceOut:
    return OccurrenceOut(
        **event.model_dump(),
        event_id=real_id(event.id),
        generated=event.is_generated,
        type_label=event_type_label(event.event_type),
        recurrence_label=recurrence_label(event.recurrence),
    )


def _window(start: str, end: str) -> Window:
    try:
        return Window(start=start, end=end)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.errors(include_url=False, include_context=False, include_input=False)) from exc


async def _load(service: CalendarService, user_id: str, window: Window) -> List[Event]:
    try:
        return await service.load_window(user_id, window)
    except EventStoreError as exc:
        log.warning("API: Could not load events for user '%s': %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Could not load events") from exc


def _raise_on_failure(result: MutationResult) -> MutationResult:
    if result.ok:
        return result
    code = status.HTTP_404_NOT_FOUND if result.not_found else status.HTTP_502_BAD_GATEWAY
    raise HTTPException(status_code=code, detail=result.notice.message)


# --- Эндпоинты ---
@router.get("/events", response_model=List[OccurrenceOut], summary="Occurrences inside a window")
async def list_occurrences(
    start: str = Query(..., description="Window start (date or ISO datetime, inclusive)"),
    end: str = Query(..., description="Window end (date or ISO datetime, inclusive)"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> List[OccurrenceOut]:
    window = _window(start, end)
    occurrences = await _load(service, user_id, window)
    log.info("API: %d occurrences for user '%s' in %s..%s", len(occurrences), user_id, window.start, window.end)
    return [_out(ev) for ev in occurrences]


@router.get("/views/{view_name}", response_model=CalendarViewOut, summary="Month / week / day projection")
async def calendar_view(
    view_name: Literal["month", "week", "day"],
    day: Optional[date] = Query(None, description="Any day of the period; defaults to today (UTC)"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarViewOut:
    today = datetime.now(timezone.utc).date()
    anchor = day or today
    if view_name == "month":
        window = projector.month_window(anchor, settings.WEEK_STARTS_ON)
    elif view_name == "week":
        window = projector.week_window(anchor, settings.WEEK_STARTS_ON)
    else:
        window = projector.day_window(anchor)

    occurrences = await _load(service, user_id, window)
    out = CalendarViewOut(view=view_name, window=window, occurrences=[_out(ev) for ev in occurrences])
    if view_name == "month":
        weeks = projector.month_grid(occurrences, anchor, today=today, week_start=settings.WEEK_STARTS_ON)
        out.weeks = [
            [
                DayCellOut(
                    day=cell.day,
                    in_month=cell.in_month,
                    is_today=cell.is_today,
                    events=[_out(ev) for ev in cell.events],
                    overflow=cell.overflow,
                )
                for cell in week
            ]
            for week in weeks
        ]
    else:
        all_day, timed = projector.split_all_day(occurrences)
        if view_name == "week":
            geometry = {"hour_height": projector.WEEK_HOUR_HEIGHT, "min_height": projector.WEEK_MIN_BLOCK_HEIGHT}
        else:
            geometry = {"hour_height": projector.HOUR_HEIGHT, "min_height": projector.MIN_BLOCK_HEIGHT}
        out.all_day = [_out(ev) for ev in all_day]
        out.timeline = [
            TimelineBlockOut(event=_out(block.event), top=block.top, height=block.height)
            for block in projector.timeline(timed, **geometry)
        ]
    return out


@router.get("/search", response_model=List[OccurrenceOut], summary="Search events by title")
async def search_events(
    q: str = Query(..., max_length=255, description="Part of the title, at least 2 characters"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> List[OccurrenceOut]:
    try:
        found = await service.search(user_id, q)
    except EventStoreError as exc:
        log.warning("API: Search failed for user '%s': %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Could not search events") from exc
    return [_out(ev) for ev in found]


@router.get("/export.csv", response_class=StreamingResponse, summary="CSV of the occurrences inside a window")
async def export_occurrences(
    start: str = Query(..., description="Window start (date or ISO datetime, inclusive)"),
    end: str = Query(..., description="Window end (date or ISO datetime, inclusive)"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> StreamingResponse:
    window = _window(start, end)
    occurrences = await _load(service, user_id, window)
    filename = f"agenda-{window.start.date().isoformat()}_{window.end.date().isoformat()}.csv"
    log.info("API: Exporting %d occurrences for user '%s'", len(occurrences), user_id)
    return StreamingResponse(
        iter([export_csv(occurrences)]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/events", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventIn = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    return _raise_on_failure(await service.create_event(user_id, data))


@router.put("/events/{event_id}", response_model=MutationResult)
async def update_event(
    event_id: str,
    data: EventIn = Body(...),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    """``event_id`` может быть синтетическим: правится вся серия."""
    return _raise_on_failure(await service.update_event(user_id, event_id, data))


@router.delete("/events/{event_id}", response_model=MutationResult)
async def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> MutationResult:
    """``event_id`` может быть синтетическим: удаляется вся серия."""
    return _raise_on_failure(await service.delete_event(user_id, event_id))
