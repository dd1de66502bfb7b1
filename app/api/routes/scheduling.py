# app/api/routes/scheduling.py
from datetime import date as date_type
from http import HTTPStatus

from fastapi import APIRouter, Depends, Query

from app.api.dependencies.services import get_availability_engine, get_booking_orchestrator
from app.schemas.availability import AvailabilityCheck, BookedSlotsResponse, DaySlots
from app.schemas.booking import BookingResponse, CreateMeetingRequest, DiscoveryCallRequest
from app.services.availability import AvailabilityEngine
from app.services.booking import BookingOrchestrator

router = APIRouter(prefix="/api", tags=["Scheduling"])

_ERROR_EXAMPLE = {
    "success": False,
    "error": "NotAWeekday",
    "message": "Meetings are only available Monday to Friday.",
    "reason": "Not a weekday",
}


@router.get(
    "/check-availability",
    response_model=AvailabilityCheck,
    summary="Check whether a single slot can be booked",
    description=(
        "Evaluates one (date, time) pair against the booking rules:\n\n"
        "- Monday to Friday only\n"
        "- 9:00 AM to 6:00 PM, GMT+5:30\n"
        "- Must be in the future\n"
        "- Must not be booked already\n\n"
        "`time` accepts both `14:00` and `2:00 PM`. When several rules fail, "
        "the reported reason follows the order above."
    ),
    responses={
        400: {
            "description": "Unparseable time or malformed date.",
            "content": {"application/json": {"example": {
                "success": False,
                "error": "InvalidTimeFormat",
                "message": "Invalid 12-hour time: '25:00 PM'",
                "reason": None,
            }}},
        },
    },
)
async def check_availability(
    date: date_type = Query(..., description="Calendar date, YYYY-MM-DD.", example="2025-09-08"),
    time: str = Query(..., description="24-hour `HH:MM` or 12-hour `H:MM AM/PM`.", example="2:00 PM"),
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> AvailabilityCheck:
    return await engine.check_availability(date, time)


@router.get(
    "/available-slots",
    response_model=DaySlots,
    summary="List all 30-minute slots for a date",
    description=(
        "Returns every slot from 9:00 AM to 5:30 PM (GMT+5:30) with its status. "
        "Weekends return an empty list with `available=false`."
    ),
)
async def available_slots(
    date: date_type = Query(..., description="Calendar date, YYYY-MM-DD.", example="2025-09-08"),
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> DaySlots:
    return await engine.enumerate_slots(date)


@router.get(
    "/booked-slots",
    response_model=BookedSlotsResponse,
    summary="List booked slots for a date",
)
async def booked_slots(
    date: date_type = Query(..., description="Calendar date, YYYY-MM-DD.", example="2025-09-08"),
    engine: AvailabilityEngine = Depends(get_availability_engine),
) -> BookedSlotsResponse:
    return await engine.list_booked_slots(date)


@router.post(
    "/schedule-discovery-call",
    response_model=BookingResponse,
    status_code=HTTPStatus.OK,
    summary="Book a discovery call",
    description=(
        "Validates the slot, creates a Teams meeting for the organizer, reserves "
        "the slot and emails the requester, each guest, the organizer and the admin.\n\n"
        "Email failures are listed in `emailResults` and do not fail the booking."
    ),
    responses={
        400: {
            "description": "Validation failed (weekend, outside hours, past, booked, bad input).",
            "content": {"application/json": {"example": _ERROR_EXAMPLE}},
        },
        500: {
            "description": "The meeting could not be created; no slot was reserved.",
        },
    },
)
async def schedule_discovery_call(
    payload: DiscoveryCallRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingResponse:
    return await orchestrator.schedule_discovery_call(payload)


@router.post(
    "/create-meeting",
    response_model=BookingResponse,
    status_code=HTTPStatus.OK,
    summary="Create an ad-hoc meeting",
    description=(
        "Creates a meeting with explicit start/end instants and emails the attendees. "
        "Slot rules are not applied and no slot is reserved."
    ),
)
async def create_meeting(
    payload: CreateMeetingRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
) -> BookingResponse:
    return await orchestrator.create_meeting(payload)
