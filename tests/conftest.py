"""Shared fakes for the actuator HTTP endpoints."""

from __future__ import annotations

from typing import Any

import pytest
import requests

INVALID_JSON = object()


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests / requests.Session.

    routes maps a URL to a list of outcomes consumed in order (the last one repeats).
    An outcome is an HTTP status code, a FakeResponse, or an exception to raise.
    """

    def __init__(self, routes: dict[str, list[Any]] | None = None):
        self.routes = {url: list(outcomes) for url, outcomes in (routes or {}).items()}
        self.calls: list[str] = []

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append(url)
        outcomes = self.routes[url]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, int):
            return FakeResponse(outcome, {"status": "UP" if outcome == 200 else "DOWN"})
        return outcome

    def count(self, url: str) -> int:
        return self.calls.count(url)


BASE_URL = "http://localhost:8080"
HEALTH_URL = f"{BASE_URL}/actuator/health"
STARTED_URL = f"{BASE_URL}/actuator/metrics/application.started.time"
MEMORY_URL = f"{BASE_URL}/actuator/metrics/jvm.memory.used"


def metric_payload(name: str, value: Any) -> dict[str, Any]:
    return {
        "name": name,
        "baseUnit": "seconds" if name == "application.started.time" else "bytes",
        "measurements": [{"statistic": "VALUE", "value": value}],
        "availableTags": [],
    }


def actuator_session(started: Any = 4.521, memory: Any = 187654321, health: list[Any] | None = None) -> FakeSession:
    return FakeSession(
        {
            HEALTH_URL: health or [200],
            STARTED_URL: [FakeResponse(200, metric_payload("application.started.time", started))],
            MEMORY_URL: [FakeResponse(200, metric_payload("jvm.memory.used", memory))],
        }
    )


@pytest.fixture()
def events(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, dict]]:
    """Capture structured events instead of writing them to stderr."""
    from upgrade_demo.logging import demo_logger

    captured: list[tuple[str, dict]] = []
    monkeypatch.setattr(demo_logger, "log_event", lambda event_type, details=None: captured.append((event_type, details or {})))
    return captured
