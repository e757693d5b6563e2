"""Small demo client that walks through a guest session.
Run while the server is running locally at http://127.0.0.1:8787
"""
import asyncio

import httpx


BASE = "http://127.0.0.1:8787"


async def do_demo():
    async with httpx.AsyncClient(base_url=BASE, timeout=10.0) as client:
        r = await client.post("/auth/guest")
        print("guest =>", r.status_code, r.json())
        headers = {"Authorization": "Bearer " + r.json()["token"]}

        # A miss costs nothing and starts no cooldown
        r = await client.post("/jobs/fishing/claim", json={"success": False}, headers=headers)
        print("fishing(miss) =>", r.status_code, r.json())

        r = await client.post("/jobs/fishing/claim", json={"success": True}, headers=headers)
        print("fishing(catch) =>", r.status_code, r.json())

        # Immediate retry hits the cooldown
        r = await client.post("/jobs/fishing/claim", json={"success": True}, headers=headers)
        print("fishing(retry) =>", r.status_code, r.json())

        r = await client.post("/market/sell", json={"item": "fish", "qty": 1}, headers=headers)
        print("sell =>", r.status_code, r.json())

        print("limits =>", (await client.get("/limits", headers=headers)).json())
        print("wallet =>", (await client.get("/wallet", headers=headers)).json())
        print("inventory =>", (await client.get("/inventory", headers=headers)).json())


if __name__ == "__main__":
    asyncio.run(do_demo())
