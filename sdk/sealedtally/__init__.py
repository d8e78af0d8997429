# SPDX-License-Identifier: Apache-2.0
"""SealedTally Client SDK for local encryption and API interaction."""
from .client import SealedTallyClient
from .exceptions import APIError, CryptoError, SealedTallyError

__all__ = ["SealedTallyClient", "APIError", "CryptoError", "SealedTallyError"]
