"""Smoke script that fires concurrent fishing claims and sells for one guest.

Usage examples:
  python examples/smoke_concurrency.py --catches 20 --sells 20

Options:
  --base-url     Base URL of service (default http://127.0.0.1:8787)
  --catches      number of concurrent successful fishing claims
  --sells        number of concurrent single-fish sells fired after the catches
"""
import argparse
import asyncio
import time

import httpx


def parse_args():
    p = argparse.ArgumentParser()
    p.add_argument("--base-url", default="http://127.0.0.1:8787")
    p.add_argument("--catches", type=int, default=20)
    p.add_argument("--sells", type=int, default=20)
    return p.parse_args()


async def run_smoke(args):
    async with httpx.AsyncClient(base_url=args.base_url, timeout=30.0) as client:
        r = await client.post("/auth/guest")
        r.raise_for_status()
        headers = {"Authorization": "Bearer " + r.json()["token"]}

        print(f"Starting smoke test: catches={args.catches} sells={args.sells}\n")
        start = time.time()

        catches = await asyncio.gather(
            *[client.post("/jobs/fishing/claim", json={"success": True}, headers=headers) for _ in range(args.catches)]
        )
        sells = await asyncio.gather(
            *[client.post("/market/sell", json={"item": "fish", "qty": 1}, headers=headers) for _ in range(args.sells)]
        )

        elapsed = time.time() - start
        caught = sum(1 for c in catches if c.status_code == 200)
        gained = sum(c.json()["gained"] for c in catches if c.status_code == 200)
        sold = sum(1 for s in sells if s.status_code == 200)
        expected = gained + sold * 10

        wallet = (await client.get("/wallet", headers=headers)).json()
        inventory = (await client.get("/inventory", headers=headers)).json()
        fish = next((row["qty"] for row in inventory if row["item"] == "fish"), 0)

        print(f"Elapsed: {elapsed:.2f}s")
        print(f"Catches allowed: {caught} (cooldown should allow exactly 1)")
        print(f"Sells accepted:  {sold}")
        print(f"Expected acorns: {expected}")
        print(f"Server acorns:   {wallet.get('acorns')}")
        print(f"Fish left:       {fish}")
        if caught == 1 and wallet.get("acorns") == expected and fish == caught - sold:
            print("SUCCESS: gate held and no lost updates detected.")
        else:
            print("FAIL: mismatch, potential concurrency issue.")


def main():
    args = parse_args()
    try:
        asyncio.run(run_smoke(args))
    except Exception as e:
        print("Error during smoke test:", e)


if __name__ == "__main__":
    main()
