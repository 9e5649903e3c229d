"""Request-scoped access to the long-lived objects built in the lifespan."""
from __future__ import annotations

from fastapi import Request

from agrisync.auth import TokenManager
from agrisync.services.api_client import OutsourceClient
from agrisync.services.scheduler import SchedulerGate


def get_outsource_client(request: Request) -> OutsourceClient:
    return request.app.state.outsource


def get_token_manager(request: Request) -> TokenManager:
    return request.app.state.tokens


def get_gate(request: Request) -> SchedulerGate:
    return request.app.state.gate
