# discovery/config.py

import os
from pydantic import BaseModel, PositiveInt, NonNegativeFloat

# Folder for the discovery database (same path as in docker-compose.yml)
DB_DIR = os.environ.get("DISCOVERY_DB_DIR", "data")
DB_PATH = os.environ.get("DISCOVERY_DB_PATH", os.path.join(DB_DIR, "discovery.db"))

# Maximum number of discoveries running at the same time
MAX_CONCURRENCY = int(os.environ.get("DISCOVERY_MAX_CONCURRENCY", "10"))

# Simulated probe latency per instance (seconds), 0 = none
DISCOVERY_DELAY_SECONDS = float(os.environ.get("DISCOVERY_DELAY_SECONDS", "0"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


class DispatchConfig(BaseModel):
    max_concurrency: PositiveInt = 10
    db_path: str = "data/discovery.db"
    discovery_delay_seconds: NonNegativeFloat = 0.0


def load_config(**overrides) -> DispatchConfig:
    """Builds the config from the environment; keyword overrides win (used by tests)."""
    values = {
        "max_concurrency": MAX_CONCURRENCY,
        "db_path": DB_PATH,
        "discovery_delay_seconds": DISCOVERY_DELAY_SECONDS,
    }
    values.update(overrides)
    return DispatchConfig(**values)
