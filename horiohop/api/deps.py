# horiohop/api/deps.py
from fastapi import Request

from horiohop.core.config import Settings
from horiohop.services.demand_ledger import DemandLedger
from horiohop.services.journey_orchestrator import JourneyOrchestrator
from horiohop.services.routing_client import RoutingClient


# Session objects live on app.state for the lifetime of the app (see main.lifespan).

def get_config(request: Request) -> Settings:
    return request.app.state.config


def get_orchestrator(request: Request) -> JourneyOrchestrator:
    return request.app.state.journey


def get_routing_client(request: Request) -> RoutingClient:
    return request.app.state.routing_client


def get_ledger(request: Request) -> DemandLedger:
    return request.app.state.ledger
