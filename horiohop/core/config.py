# horiohop/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "HorioHop"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Enables maintenance endpoints such as clearing the demand ledger.
    DEBUG_MODE: bool = False
    # Fill an empty ledger with synthetic demand at startup. Never enable in a deployed instance.
    DEMO_SEED: bool = False
    # Village ids to seed, as a JSON list, e.g. DEMO_SEED_VILLAGES=["lefkara","omodos"]
    DEMO_SEED_VILLAGES: List[str] = []

    # Journey-planning endpoint of the routing engine (Motis API v2)
    ROUTING_BASE_URL: str = "http://localhost:8080"
    ROUTING_PLAN_PATH: str = "/api/v2/plan"
    ROUTING_NUM_ITINERARIES: int = 5
    ROUTING_PEDESTRIAN_PROFILE: str = "FOOT"
    # None means no timeout
    ROUTING_TIMEOUT_S: Optional[float] = None

    # Device-local demand storage
    DEMAND_STORE_DIR: str = ".horiohop"
    DEMAND_STORAGE_KEY: str = "horiohop_demands"
    DEMAND_WINDOW_DAYS: int = 30

    # Fixed device position; when unset the client reports it via /journey/location
    DEVICE_LAT: Optional[float] = None
    DEVICE_LNG: Optional[float] = None


settings = Settings()
