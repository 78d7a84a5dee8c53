"""
Shared pytest fixtures for the scheduling client tests.

HTTP traffic is served by an in-process fake API mounted on
``httpx.MockTransport``; nothing leaves the test process.
"""
import json

import httpx
import pytest

from schedclient.adapters.api import ApiClient

BASE_URL = "http://tournament.test/api"


class FakeApi:
    """Route table plus a log of every request the client made."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, payload=None, status=200):
        self.routes[(method, path)] = (status, payload)

    def on(self, method, path, handler):
        self.routes[(method, path)] = handler

    def __call__(self, request):
        path = request.url.path
        if path.startswith("/api"):
            path = path[len("/api"):]
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route for {request.method} {path}"})
        if callable(route):
            return route(request)
        status, payload = route
        return httpx.Response(status, json=payload)

    def calls_to(self, path):
        return [c for c in self.calls if c[1] == path]

    def transport(self):
        return httpx.MockTransport(self)

    def client(self):
        return ApiClient(base_url=BASE_URL, transport=self.transport())


def match_json(number, round_number=1, status="PENDING", red=("101", "102"), blue=("201", "202")):
    return {
        "id": f"m{number}",
        "matchNumber": number,
        "roundNumber": round_number,
        "status": status,
        "alliances": [
            {"color": "RED", "teamAlliances": [{"team": {"teamNumber": t}} for t in red]},
            {"color": "BLUE", "teamAlliances": [{"team": {"teamNumber": t}} for t in blue]},
        ],
    }


def ranking_json(team_id, rank, wins=0, losses=0):
    return {
        "teamId": team_id,
        "teamNumber": str(1000 + rank),
        "teamName": f"Team {team_id}",
        "wins": wins,
        "losses": losses,
        "ties": 0,
        "pointsScored": 100,
        "pointsConceded": 80,
        "pointDifferential": 20,
        "rankingPoints": wins * 2,
        "tiebreaker1": 0,
        "tiebreaker2": 0,
        "rank": rank,
    }


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def notices():
    """Collects (level, message) pairs sent to the notify hook."""
    collected = []

    def notify(level, message):
        collected.append((level, message))

    notify.collected = collected
    return notify
