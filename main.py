# main.py

from fastapi import FastAPI
from datetime import datetime, timezone
from discovery.config import LOG_LEVEL
from discovery.models import DiscoveryBatch, DiscoveryRequest
from discovery.service import DiscoveryService
from contextlib import asynccontextmanager
import logging
from typing import Union

# Setup logging
logging.basicConfig(level=LOG_LEVEL)
log = logging.getLogger("uvicorn")

service = DiscoveryService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown of the discovery queue.
    On shutdown the queue drains: queued and running discoveries finish first.
    """
    log.info("Server starting up...")
    await service.initialize()
    yield
    log.info("Server shutting down.")
    await service.shutdown()


app = FastAPI(
    title="Instance Discovery Service (Dispatch Queue)",
    lifespan=lifespan
)

START_TIME = datetime.now(timezone.utc).isoformat()


@app.post("/discover", status_code=202)
async def discover(body: Union[DiscoveryBatch, DiscoveryRequest]):
    """
    Only puts the request on the input channel, never waits for discovery.
    Duplicates of queued or running instances are merged by the queue.
    """
    if isinstance(body, DiscoveryBatch):
        await service.request_batch(r.to_key() for r in body.instances)
        return {"status": "accepted", "queued_count": len(body.instances)}
    else:
        await service.request_discovery(body.to_key())
        return {"status": "accepted", "queued_count": 1}


@app.get("/instances")
async def get_instances():
    return await service.get_instances()


@app.get("/stats")
async def get_stats():
    stats = (await service.get_stats()).model_dump()
    stats["discovered_instances"] = await service.store.count()
    stats["start_time"] = START_TIME
    return stats


# --- Main execution (development) ---
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )
