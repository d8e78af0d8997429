# SPDX-License-Identifier: Apache-2.0
"""Encrypted-value substrate: single-slot BFV ciphertexts behind opaque handles.

Ciphertexts live in the ``ciphertexts`` table and are referenced by handle
(``0x`` + SHA3-256 of the serialized ciphertext). Add, sub, mul and select are
homomorphic. eq and lt run in the substrate's trusted evaluator, which holds
the secret context and only ever returns fresh encryptions of 0 or 1.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import tenseal as ts
from sqlmodel import select

from app.config import settings
from app.core.exceptions import InvalidProofError, NotFoundError
from app.core.security import hmac_sha3_hex, normalize_address, sha3_256_hex
from app.models import Ciphertext, CiphertextGrant

logger = logging.getLogger("sealedtally")

CONTEXT_FILE = "bfv_context.bin"


class FheKeys:
    """Secret BFV context plus its public serialization for clients."""

    def __init__(self, context: ts.Context):
        self.context = context
        self.public_context_bytes = context.serialize(save_secret_key=False)

    @classmethod
    def generate(cls, poly_modulus_degree: int, plain_modulus: int) -> "FheKeys":
        ctx = ts.context(ts.SCHEME_TYPE.BFV, poly_modulus_degree=poly_modulus_degree, plain_modulus=plain_modulus)
        ctx.generate_relin_keys()
        return cls(ctx)

    @classmethod
    def load_or_create(cls, key_dir: Path, poly_modulus_degree: int, plain_modulus: int) -> "FheKeys":
        path = Path(key_dir) / CONTEXT_FILE
        if path.exists():
            logger.info("Loading BFV context from %s", path)
            return cls(ts.context_from(path.read_bytes()))
        keys = cls.generate(poly_modulus_degree, plain_modulus)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(keys.context.serialize(save_secret_key=True))
        logger.info("Generated new BFV context at %s", path)
        return keys


@lru_cache(maxsize=1)
def get_fhe_keys() -> FheKeys:
    return FheKeys.load_or_create(
        settings.fhe_key_path, settings.bfv_poly_modulus_degree, settings.bfv_plain_modulus
    )


def input_proof(handle: str, contract: str, user: str) -> str:
    """Proof binding an input handle to the target contract and the submitting user."""
    return hmac_sha3_hex(settings.input_verifier_key, handle, normalize_address(contract), normalize_address(user))


class EncryptedScalars:
    """Substrate operations bound to one DB session."""

    def __init__(self, session, keys: FheKeys):
        self.session = session
        self.keys = keys

    # storage

    def _store(self, vec: ts.BFVVector) -> str:
        data = vec.serialize()
        handle = "0x" + sha3_256_hex(data)
        if self.session.get(Ciphertext, handle) is None:
            self.session.add(Ciphertext(handle=handle, data=data))
            self.session.flush()
        return handle

    def _load(self, handle: str) -> ts.BFVVector:
        row = self.session.get(Ciphertext, handle)
        if row is None:
            raise NotFoundError(f"Unknown handle {handle}")
        return ts.bfv_vector_from(self.keys.context, row.data)

    def _encrypt_vec(self, value: int) -> ts.BFVVector:
        return ts.bfv_vector(self.keys.context, [int(value)])

    def _plain(self, handle: str) -> int:
        return int(self._load(handle).decrypt()[0])

    # public operations

    def encrypt(self, cleartext: int) -> str:
        return self._store(self._encrypt_vec(cleartext))

    def add(self, a: str, b: str) -> str:
        return self._store(self._load(a) + self._load(b))

    def sub(self, a: str, b: str) -> str:
        return self._store(self._load(a) - self._load(b))

    def mul(self, a: str, b: str) -> str:
        return self._store(self._load(a) * self._load(b))

    def eq(self, a: str, b: str) -> str:
        return self.encrypt(1 if self._plain(a) == self._plain(b) else 0)

    def lt(self, a: str, b: str) -> str:
        return self.encrypt(1 if self._plain(a) < self._plain(b) else 0)

    def select(self, cond: str, a: str, b: str) -> str:
        """cond ? a : b, computed as b + cond * (a - b); cond must encrypt 0 or 1."""
        return self.add(b, self.mul(cond, self.sub(a, b)))

    def clamp_to_range(self, value: str, low: int, high: int) -> str:
        """Return value if low <= value <= high, else an encryption of 0, without decrypting."""
        above_low = self.lt(self.encrypt(low - 1), value)
        below_high = self.lt(value, self.encrypt(high + 1))
        in_range = self.mul(above_low, below_high)
        return self.mul(in_range, value)

    # external inputs

    def register_input(self, data: bytes, contract: str, user: str) -> tuple[str, str]:
        """Verify a client ciphertext deserializes under our context, store it, return (handle, proof)."""
        try:
            vec = ts.bfv_vector_from(self.keys.context, data)
        except Exception as e:
            raise InvalidProofError("Input is not a ciphertext under the service public context") from e
        if vec.size() != 1:
            raise InvalidProofError("Input must encrypt exactly one scalar")
        handle = self._store(vec)
        return handle, input_proof(handle, contract, user)

    def from_external_input(self, handle: str, proof: str, contract: str, user: str) -> str:
        if self.session.get(Ciphertext, handle) is None:
            raise InvalidProofError(f"Unknown input handle {handle}")
        if proof != input_proof(handle, contract, user):
            raise InvalidProofError("Input proof does not match handle, contract and signer")
        return handle

    def require_held(self, handle: str, user: str) -> str:
        """Handle of a stored ciphertext the user can already read."""
        if self.session.get(Ciphertext, handle) is None:
            raise InvalidProofError(f"Unknown input handle {handle}")
        if not self.is_allowed(handle, user):
            raise InvalidProofError(f"{user} holds no grant on {handle}")
        return handle

    # access grants

    def allow(self, handle: str, grantee: str) -> None:
        grantee = normalize_address(grantee)
        if not self.is_allowed(handle, grantee):
            self.session.add(CiphertextGrant(handle=handle, grantee=grantee))
            self.session.flush()

    def allow_this(self, handle: str) -> None:
        self.allow(handle, settings.contract_address)

    def is_allowed(self, handle: str, who: str) -> bool:
        stmt = select(CiphertextGrant).where(
            CiphertextGrant.handle == handle, CiphertextGrant.grantee == normalize_address(who)
        )
        return self.session.exec(stmt).first() is not None

    def decrypt_for_oracle(self, handle: str) -> int:
        """Plaintext of a handle. Only the decryption oracle calls this."""
        return self._plain(handle)
