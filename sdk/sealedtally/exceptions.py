# SPDX-License-Identifier: Apache-2.0
"""SDK-specific exceptions."""


class SealedTallyError(Exception):
    """Base exception for SDK."""


class CryptoError(SealedTallyError):
    """Public context or encryption error."""


class APIError(SealedTallyError):
    """API request failed. ``code`` is the server's error code (e.g. ``DuplicateSubmission``)."""

    def __init__(self, code: str, detail: str = "", status: int = 0):
        super().__init__(f"{code}: {detail}" if detail else code)
        self.code = code
        self.detail = detail
        self.status = status
