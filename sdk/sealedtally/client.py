# SPDX-License-Identifier: Apache-2.0
"""Main SDK class: SealedTallyClient. Wraps the HTTP API and local encryption."""
from __future__ import annotations

from typing import Any

import requests

from . import audit, crypto
from .exceptions import APIError, SealedTallyError


class SealedTallyClient:
    """Client for the SealedTally API.

    ``identity`` is the address used as caller, proposer or participant when a
    method is not given one explicitly.
    """

    def __init__(
        self,
        api_base_url: str = "http://localhost:8000",
        identity: str | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.identity = identity
        self.session = session or requests.Session()
        self.timeout = timeout
        self._public_context = None

    # transport

    def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = self.session.request(method, f"{self.api_base_url}{path}", timeout=self.timeout, **kwargs)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            detail = body.get("detail", resp.text)
            raise APIError(body.get("error") or f"HTTP {resp.status_code}", str(detail), resp.status_code)
        return resp

    def _get(self, path: str, **params) -> Any:
        return self._request("GET", path, params=params or None).json()

    def _post(self, path: str, payload: dict) -> Any:
        return self._request("POST", path, json=payload).json()

    def _who(self, identity: str | None) -> str:
        who = identity or self.identity
        if not who:
            raise SealedTallyError("No identity given and no default identity configured")
        return who

    # registry

    def propose(self, name: str, description: str, category: str, proposer: str | None = None) -> int:
        body = {"name": name, "description": description, "category": category, "proposer": self._who(proposer)}
        return self._post("/entries", body)["entry_id"]

    def list_entries(self, active_only: bool = False) -> dict:
        return self._get("/entries", active_only=active_only)

    def get_entry(self, entry_id: int) -> dict:
        return self._get(f"/entries/{entry_id}")

    def deactivate(self, entry_id: int, caller: str | None = None) -> dict:
        return self._post(f"/entries/{entry_id}/deactivate", {"caller": self._who(caller)})

    def authorize(self, identity: str, caller: str | None = None) -> dict:
        return self._post("/participants/authorize", {"identity": identity, "caller": self._who(caller)})

    def revoke(self, identity: str, caller: str | None = None) -> dict:
        return self._post("/participants/revoke", {"identity": identity, "caller": self._who(caller)})

    def is_authorized(self, identity: str) -> bool:
        return self._get(f"/participants/{identity}")["authorized"]

    # rounds

    def open_round(self, entry_ids: list[int], tally_mode: str | None = None, caller: str | None = None) -> dict:
        body = {"entry_ids": list(entry_ids), "caller": self._who(caller)}
        if tally_mode:
            body["tally_mode"] = tally_mode
        return self._post("/rounds/open", body)

    def close_round(self, caller: str | None = None) -> dict:
        return self._post("/rounds/close", {"caller": self._who(caller)})

    def current_round(self) -> dict:
        return self._get("/rounds/current")

    def round_results(self, round_number: int) -> dict:
        return self._get(f"/rounds/{round_number}/results")

    def audit_trail(self, round_number: int) -> list:
        return self._get(f"/rounds/{round_number}/audit_trail")

    def verify_round_audit(self, round_number: int) -> dict:
        return audit.verify_trail(self.audit_trail(round_number))

    # submissions

    def submit_score(self, entry_id: int, score: int, participant: str | None = None) -> dict:
        """Send a cleartext score; the service encrypts it."""
        body = {"entry_id": entry_id, "participant": self._who(participant), "score": score}
        return self._post("/rounds/current/submissions", body)

    def public_context(self):
        if self._public_context is None:
            raw = self._request("GET", "/fhe/public-context").content
            self._public_context = crypto.load_public_context(raw)
        return self._public_context

    def register_input(self, value: int, user: str | None = None) -> dict:
        """Encrypt locally under the public context and register the ciphertext. Returns handle and proof."""
        ciphertext = crypto.encrypt_scalar(self.public_context(), value)
        return self._post("/fhe/inputs", {"ciphertext": crypto.encode_ciphertext(ciphertext), "user": self._who(user)})

    def submit_encrypted(self, entry_id: int, value: int, participant: str | None = None) -> dict:
        """Encrypt locally and submit; the score never leaves this machine in cleartext."""
        participant = self._who(participant)
        registered = self.register_input(value, participant)
        body = {
            "entry_id": entry_id,
            "participant": participant,
            "handle": registered["handle"],
            "proof": registered["proof"],
        }
        return self._post("/rounds/current/submissions", body)

    def submission_status(self, entry_id: int, participant: str | None = None) -> dict:
        return self._get(f"/rounds/current/submissions/{entry_id}/{self._who(participant)}")

    def user_decrypt(self, handle: str, user: str | None = None) -> int:
        return self._post("/fhe/user-decrypt", {"handle": handle, "user": self._who(user)})["value"]

    # oracle

    def oracle_public_key(self) -> str:
        return self._get("/oracle/public-key")["public_key"]

    def health(self) -> dict:
        return self._get("/system/health")
