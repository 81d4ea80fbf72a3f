"""
Test doubles: a pinned clock and a scriptable Home Assistant hub.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List
from urllib.parse import parse_qs

import httpx

APP_URL = "https://doorlock.example"
HUB_URL = "https://hub.example"
CLIENT_SECRET = "s3cret"


class FixedClock:
    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeHub:
    """Stand-in for a Home Assistant instance behind ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.token_status = 200
        self.token_payload: Any = {"access_token": "A2", "expires_in": 3600}
        self.states: Any = []
        self.open_status = 200
        self.unreachable = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/auth/token":
            if isinstance(self.token_payload, bytes):
                return httpx.Response(self.token_status, content=self.token_payload)
            return httpx.Response(self.token_status, json=self.token_payload)
        if path == "/api/states":
            return httpx.Response(200, json=self.states)
        if path == "/api/services/lock/open":
            return httpx.Response(self.open_status, json=[])
        return httpx.Response(404)

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
