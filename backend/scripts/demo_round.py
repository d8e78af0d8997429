#!/usr/bin/env python3
"""
End-to-end demo of one SealedTally round, run in-process.

Uses a throwaway SQLite database and key directory, proposes three entries,
authorizes two voters, opens a round, submits one cleartext score and one
locally encrypted score, closes the round and prints the revealed winner.

Run from backend directory:
  python scripts/demo_round.py [--mode sum|max]
"""
from __future__ import annotations

import argparse
import base64
import json
import os
import sys
import tempfile
from pathlib import Path

# Add backend root so we can import app
BACKEND_ROOT = Path(__file__).resolve().parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

ALICE = "0x00000000000000000000000000000000000a11ce"
BOB = "0x0000000000000000000000000000000000000b0b"


def _check(resp, expected: int) -> dict:
    if resp.status_code != expected:
        print(f"FAIL {resp.request.method} {resp.request.url}: {resp.status_code} {resp.text}")
        sys.exit(1)
    return resp.json()


def run_demo(mode: str) -> dict:
    import tenseal as ts
    from fastapi.testclient import TestClient

    from app.config import settings
    from app.main import app

    admin = settings.admin_address
    high = settings.score_max if mode == "sum" else settings.bid_max
    with TestClient(app) as client:
        for name, category in (("Street mural", "visual"), ("Jazz night", "music"), ("Poetry slam", "literature")):
            _check(client.post("/entries", json={
                "name": name, "description": f"{name} for the district", "category": category, "proposer": ALICE,
            }), 201)
        for voter in (ALICE, BOB):
            _check(client.post("/participants/authorize", json={"identity": voter, "caller": admin}), 200)
        rnd = _check(client.post("/rounds/open", json={"entry_ids": [1, 2, 3], "caller": admin, "tally_mode": mode}), 201)
        print(f"Round {rnd['round']} open over entries {rnd['entry_ids']} ({mode})")

        _check(client.post("/rounds/current/submissions", json={"entry_id": 1, "participant": ALICE, "score": high - 2}), 201)

        public = ts.context_from(client.get("/fhe/public-context").content)
        ciphertext = base64.b64encode(ts.bfv_vector(public, [high]).serialize()).decode()
        reg = _check(client.post("/fhe/inputs", json={"ciphertext": ciphertext, "user": BOB}), 201)
        _check(client.post("/rounds/current/submissions", json={
            "entry_id": 2, "participant": BOB, "handle": reg["handle"], "proof": reg["proof"],
        }), 201)

        closed = _check(client.post("/rounds/close", json={"caller": admin}), 200)
        print(f"Round closed, tally request {closed['request_id']}")
        results = _check(client.get(f"/rounds/{rnd['round']}/results"), 200)
        results["audit_chain_valid"] = _check(client.get("/system/audit/verify"), 200)["valid"]
        return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one SealedTally round end to end")
    parser.add_argument("--mode", choices=["sum", "max"], default="sum")
    args = parser.parse_args()
    workdir = Path(tempfile.mkdtemp(prefix="sealedtally-demo-"))
    # Settings are read at import time, so point them at the scratch dir first.
    os.environ["DATABASE_URL"] = f"sqlite:///{workdir / 'demo.db'}"
    os.environ["FHE_KEY_DIR"] = str(workdir / "keys")
    results = run_demo(args.mode)
    print(json.dumps(results, indent=2))
    expected_winner = 2
    if results["winner_entry_id"] != expected_winner or not results["audit_chain_valid"]:
        print("FAIL: unexpected result")
        sys.exit(1)
    print("OK")


if __name__ == "__main__":
    main()
