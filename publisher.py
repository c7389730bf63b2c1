# publisher.py

# Sends discovery requests (with duplicates) to the service and waits for the queue to drain

import httpx
import asyncio
import random
import os

SERVICE_URL = os.environ.get("DISCOVERY_URL", "http://localhost:8080")
TOTAL_REQUESTS = 500
UNIQUE_INSTANCES = 100
BATCH_SIZE = 50
MAX_WAIT_SEC = 30


async def wait_for_service(client: httpx.AsyncClient):
    print("Publisher: waiting for the discovery service...")
    while True:
        try:
            resp = await client.get("/stats")
            if resp.status_code == 200:
                print("Publisher: service ready.")
                return
        except httpx.ConnectError:
            pass
        await asyncio.sleep(1)


def generate_requests():
    """TOTAL_REQUESTS requests spread over UNIQUE_INSTANCES hosts."""
    hosts = [
        {"hostname": f"db-{i:03d}.example.internal", "port": 3306}
        for i in range(UNIQUE_INSTANCES)
    ]
    return [random.choice(hosts) for _ in range(TOTAL_REQUESTS)]


async def main():
    async with httpx.AsyncClient(base_url=SERVICE_URL, timeout=10) as client:
        await wait_for_service(client)

        requests = generate_requests()
        for i in range(0, len(requests), BATCH_SIZE):
            batch = requests[i:i + BATCH_SIZE]
            resp = await client.post("/discover", json={"instances": batch})
            if resp.status_code != 202:
                print(f"Publisher: batch {i // BATCH_SIZE} failed: {resp.status_code}")

        print(f"Publisher: sent {TOTAL_REQUESTS} requests. Waiting for the queue to go idle...")

        stats = {}
        for _ in range(MAX_WAIT_SEC):
            stats = (await client.get("/stats")).json()
            print(f"  ... received={stats['received']} pending={stats['pending']} active={stats['active']}")
            if stats["received"] >= TOTAL_REQUESTS and stats["pending"] == 0 and stats["active"] == 0:
                break
            await asyncio.sleep(1)

        print("\n--- FINAL STATS ---")
        print(f"  Received:    {stats.get('received')}")
        print(f"  Duplicates:  {stats.get('duplicates')}")
        print(f"  Dispatched:  {stats.get('dispatched')}")
        print(f"  Peak active: {stats.get('peak_active')} / {stats.get('max_concurrency')}")
        print("-------------------")

        assert stats.get("peak_active", 0) <= stats.get("max_concurrency", 0), "Concurrency limit exceeded!"


if __name__ == "__main__":
    print("Publisher: starting...")
    asyncio.run(main())
