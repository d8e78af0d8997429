# SPDX-License-Identifier: Apache-2.0
"""Process-wide serialization of state transitions.

Every mutating operation runs under one lock and either commits in full or
rolls back; no two operations interleave.
"""
from __future__ import annotations

import functools
import threading

operation_lock = threading.RLock()


def serialized(fn):
    """Run ``fn(session, ...)`` atomically: commit on success, rollback on any error."""

    @functools.wraps(fn)
    def wrapper(session, *args, **kwargs):
        with operation_lock:
            try:
                result = fn(session, *args, **kwargs)
                session.commit()
            except Exception:
                session.rollback()
                raise
            return result

    return wrapper
