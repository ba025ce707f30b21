from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, data: Any) -> None:
        self.sent.append(data)


class BrokenTransport:
    async def send_json(self, data: Any) -> None:
        raise RuntimeError("socket already closed")


class StalledTransport:
    """A peer that never drains its socket."""

    async def send_json(self, data: Any) -> None:
        await asyncio.sleep(3600)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def app(tmp_path_factory: pytest.TempPathFactory):
    tmp_dir = tmp_path_factory.mktemp("runtime")

    # Must be set before importing modules that read settings.
    os.environ["UPLOADS_DIR"] = str(tmp_dir / "uploads")
    os.environ["LOG_LEVEL"] = "DEBUG"
    for name in [
        "PUBLIC_BASE_URL",
        "TWILIO_ACCOUNT_SID",
        "TWILIO_AUTH_TOKEN",
        "TWILIO_FROM_NUMBER",
        "TWILIO_API_KEY_SID",
        "TWILIO_API_KEY_SECRET",
        "TWIML_APP_SID",
    ]:
        os.environ.pop(name, None)

    import importlib

    from config.settings import get_settings

    get_settings.cache_clear()
    for module_name in [
        "api.dependencies",
        "api.twilio_routes",
        "api.calls_routes",
        "api.messaging_routes",
        "api.relay_routes",
        "api.routes",
        "main",
    ]:
        sys.modules.pop(module_name, None)

    main = importlib.import_module("main")
    return main.app


@pytest.fixture()
def client(app):
    import api.dependencies as deps

    deps.reset_state()
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    deps.reset_state()
