# SPDX-License-Identifier: Apache-2.0
"""Decryption oracle: takes batches of handles, later reports signed plaintexts.

The oracle is an external party from the tally's point of view. It is run
in-process here, but everything it hands back goes through signature
verification before the tally trusts it.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from app.config import settings
from app.core.exceptions import RequestNotFoundError, UnauthorizedError
from app.core.security import normalize_address
from app.models import DecryptionRequest
from app.services.fhe_service import EncryptedScalars, FheKeys, get_fhe_keys

logger = logging.getLogger("sealedtally")

SIGNING_KEY_FILE = "oracle_ed25519.key"


def signed_message(request_id: int, plaintexts: list[int]) -> bytes:
    return f"{request_id}|{json.dumps([int(p) for p in plaintexts])}".encode("utf-8")


def public_key_hex(key: Ed25519PublicKey) -> str:
    return key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw).hex()


def verify_signatures(public_key: Ed25519PublicKey, request_id: int, plaintexts: list[int], signatures: list[str]) -> bool:
    """True if at least one signature is present and every signature verifies."""
    if not signatures:
        return False
    message = signed_message(request_id, plaintexts)
    for sig in signatures:
        try:
            public_key.verify(bytes.fromhex(sig), message)
        except (InvalidSignature, ValueError):
            return False
    return True


def load_signing_key(key_dir: Path, seed_hex: str | None) -> Ed25519PrivateKey:
    if seed_hex:
        return Ed25519PrivateKey.from_private_bytes(bytes.fromhex(seed_hex))
    path = Path(key_dir) / SIGNING_KEY_FILE
    if path.exists():
        return Ed25519PrivateKey.from_private_bytes(bytes.fromhex(path.read_text().strip()))
    key = Ed25519PrivateKey.generate()
    raw = key.private_bytes(
        serialization.Encoding.Raw, serialization.PrivateFormat.Raw, serialization.NoEncryption()
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(raw.hex())
    logger.info("Generated new oracle signing key at %s", path)
    return key


class DecryptionOracle:
    def __init__(self, keys: FheKeys, signing_key: Ed25519PrivateKey):
        self.keys = keys
        self.signing_key = signing_key
        self.public_key = signing_key.public_key()

    @property
    def public_key_hex(self) -> str:
        return public_key_hex(self.public_key)

    def request_decryption(self, session, round_number: int, handles: list[str], callback_id: str) -> int:
        """Record a batch for later decryption and return its request id."""
        req = DecryptionRequest(round_number=round_number, callback_id=callback_id, handles=json.dumps(handles))
        session.add(req)
        session.flush()
        logger.info("Decryption requested: request %s, round %s, %d handles", req.id, round_number, len(handles))
        return req.id

    def fulfill(self, session, request_id: int) -> tuple[list[int], list[str]]:
        """Decrypt a recorded batch in order and sign the plaintexts."""
        req = session.get(DecryptionRequest, request_id)
        if req is None:
            raise RequestNotFoundError(f"Decryption request {request_id} not found")
        scalars = EncryptedScalars(session, self.keys)
        plaintexts = []
        for handle in json.loads(req.handles or "[]"):
            if not scalars.is_allowed(handle, settings.contract_address):
                raise UnauthorizedError(f"Contract has no grant on {handle}")
            plaintexts.append(scalars.decrypt_for_oracle(handle))
        return plaintexts, [self.sign(request_id, plaintexts)]

    def sign(self, request_id: int, plaintexts: list[int]) -> str:
        return self.signing_key.sign(signed_message(request_id, plaintexts)).hex()

    def verify(self, request_id: int, plaintexts: list[int], signatures: list[str]) -> bool:
        return verify_signatures(self.public_key, request_id, plaintexts, signatures)

    def user_decrypt(self, session, handle: str, user: str) -> int:
        """Plaintext for a user holding a grant on the handle.

        The contract's own grant only feeds tally batches through ``fulfill``.
        """
        if normalize_address(user) == normalize_address(settings.contract_address):
            raise UnauthorizedError("The contract grant cannot be used for user decryption")
        scalars = EncryptedScalars(session, self.keys)
        if not scalars.is_allowed(handle, user):
            raise UnauthorizedError(f"{user} has no grant on {handle}")
        return scalars.decrypt_for_oracle(handle)


@lru_cache(maxsize=1)
def get_oracle() -> DecryptionOracle:
    return DecryptionOracle(get_fhe_keys(), load_signing_key(settings.fhe_key_path, settings.oracle_signing_key))

