# horiohop/main.py

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from horiohop.api.v1 import routes_demand, routes_health, routes_journey, routes_routing
from horiohop.core.config import Settings, settings
from horiohop.core.logger import logger
from horiohop.models.routing import Coordinate
from horiohop.services.demand_ledger import DemandLedger
from horiohop.services.journey_orchestrator import JourneyOrchestrator
from horiohop.services.origin_resolver import FixedGeolocation, OriginResolver
from horiohop.services.routing_client import RoutingClient
from horiohop.services.storage import JsonFileStore


def create_app(
    config: Settings | None = None,
    routing_client: RoutingClient | None = None,
    ledger: DemandLedger | None = None,
) -> FastAPI:
    """
    Build the local session host.

    One app instance is one journey session: the orchestrator and ledger are
    created when the app starts and torn down when it stops.
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        client = routing_client or RoutingClient(config)
        journey = JourneyOrchestrator(client, OriginResolver())

        try:
            if config.DEVICE_LAT is not None and config.DEVICE_LNG is not None:
                await journey.report_device_location(
                    FixedGeolocation(Coordinate(lat=config.DEVICE_LAT, lng=config.DEVICE_LNG))
                )

            demand_ledger = ledger or DemandLedger(
                JsonFileStore(config.DEMAND_STORE_DIR),
                config,
                allow_seed=config.DEMO_SEED,
            )
            # Checked once here; the ledger refuses to seed unless built with allow_seed.
            if config.DEMO_SEED:
                logger.warning("DEMO_SEED is enabled: demand data may be synthetic")
                demand_ledger.seed(config.DEMO_SEED_VILLAGES)

            app.state.config = config
            app.state.routing_client = client
            app.state.journey = journey
            app.state.ledger = demand_ledger
            logger.info(f"{config.APP_NAME} session started ({config.ENVIRONMENT})")

            yield
        finally:
            await journey.aclose()

    app = FastAPI(
        title=config.APP_NAME,
        version=config.APP_VERSION,
        description="Transit itineraries to villages and shuttle demand logging.",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_journey.router, prefix="", tags=["journey"])
    app.include_router(routes_routing.router, prefix="", tags=["routing"])
    app.include_router(routes_demand.router, prefix="", tags=["demand"])

    return app


app = create_app()
