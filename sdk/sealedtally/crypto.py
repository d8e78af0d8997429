# SPDX-License-Identifier: Apache-2.0
"""Client-side encryption under the service's public BFV context."""
import base64

import tenseal as ts

from .exceptions import CryptoError


def load_public_context(data: bytes) -> ts.Context:
    """Deserialize the context served at /fhe/public-context. Refuses contexts carrying a secret key."""
    try:
        ctx = ts.context_from(data)
    except Exception as e:
        raise CryptoError("Could not parse public context") from e
    if ctx.has_secret_key():
        raise CryptoError("Server sent a context with a secret key")
    return ctx


def encrypt_scalar(ctx: ts.Context, value: int) -> bytes:
    """Single-slot BFV encryption of an integer score or bid."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise CryptoError(f"Only integers can be encrypted, got {value!r}")
    return ts.bfv_vector(ctx, [value]).serialize()


def encode_ciphertext(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
