# SPDX-License-Identifier: Apache-2.0
"""Verification of a round's audit trail as served by GET /rounds/{n}/audit_trail."""
import hashlib
import json

INITIAL_HASH = "0" * 64


def _sha3(*parts: bytes | str) -> str:
    h = hashlib.sha3_256()
    for p in parts:
        h.update(p.encode("utf-8") if isinstance(p, str) else p)
    return h.hexdigest()


def entry_hash(entry: dict) -> str:
    """SHA3-256(action_type || actor || details || created_at || previous_hash)."""
    details = json.dumps(entry.get("details") if isinstance(entry.get("details"), dict) else {}, sort_keys=True)
    return _sha3(
        f"{entry.get('action_type', '')}{entry.get('actor', '')}{details}"
        f"{entry.get('created_at', '')}{entry.get('previous_hash', '')}"
    )


def verify_trail(trail: list) -> dict:
    """Recompute every entry hash and check ids only ever increase.

    A round's trail is a slice of one global chain, so links to entries from
    other rounds cannot be checked here; the server's /system/audit/verify
    covers the whole chain.
    """
    if not isinstance(trail, list):
        return {"valid": False, "anomalies": ["audit trail is not a list"], "total_entries": 0}
    anomalies = []
    last_id = 0
    for i, e in enumerate(trail):
        if entry_hash(e) != e.get("entry_hash"):
            anomalies.append(f"entry {i}: entry_hash does not match its contents")
        if e.get("id", 0) <= last_id:
            anomalies.append(f"entry {i}: out of order")
        last_id = e.get("id", 0)
    return {"valid": not anomalies, "anomalies": anomalies, "total_entries": len(trail)}
