# app/api/dependencies/services.py
from fastapi import Request

from app.core.config import Settings
from app.services.availability import AvailabilityEngine
from app.services.booking import BookingOrchestrator
from app.services.graph_client import GraphClient


def get_availability_engine(request: Request) -> AvailabilityEngine:
    """
    Availability engine constructed by the application factory.
    """
    return request.app.state.availability_engine


def get_booking_orchestrator(request: Request) -> BookingOrchestrator:
    return request.app.state.booking_orchestrator


def get_graph_client(request: Request) -> GraphClient | None:
    """
    Shared Graph client, or None when Graph credentials are not configured.
    """
    return request.app.state.graph_client


def get_app_settings(request: Request) -> Settings:
    """
    Settings the application was built with (not necessarily the cached
    process-wide ones).
    """
    return request.app.state.settings
