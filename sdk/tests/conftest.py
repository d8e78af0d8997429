# SPDX-License-Identifier: Apache-2.0
import json

import pytest

from sealedtally import SealedTallyClient

BASE = "http://tally.test"
ME = "0x00000000000000000000000000000000000a11ce"


class FakeResponse:
    def __init__(self, status_code, payload=None, content=None):
        self.status_code = status_code
        self._payload = payload
        self.content = content if content is not None else json.dumps(payload).encode()
        self.text = self.content.decode("utf-8", "replace")

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Stands in for requests.Session: canned responses per (method, path), calls recorded."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, status_code=200, payload=None, content=None):
        self.routes[(method, path)] = FakeResponse(status_code, payload, content)

    def request(self, method, url, timeout=None, **kwargs):
        path = url[len(BASE):]
        self.calls.append((method, path, kwargs))
        return self.routes[(method, path)]


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client(fake_session):
    return SealedTallyClient(BASE, identity=ME, session=fake_session)
