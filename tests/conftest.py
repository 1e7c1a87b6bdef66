"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, a local script server, and mock documents.
"""

import asyncio
import os

# Must be set before iron_runner configures logging on import
os.environ["IRON_ENVIRONMENT"] = "testing"
os.environ["IRON_LOG_LEVEL"] = "DEBUG"

from typing import AsyncGenerator, Dict, List, Tuple, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from pydantic_settings import SettingsConfigDict

from iron_runner.config.settings import Settings, reload_settings
from iron_runner.core.runtime.loader import SourceLoader
from tests.utils.mocks import RecordingExecutor


# Test settings override
class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    log_level: str = "DEBUG"
    playwright_headless: bool = True
    playwright_timeout: int = 10000

    model_config = SettingsConfigDict(env_file=".env.test", env_prefix="IRON_")


@pytest.fixture(scope="session", autouse=True)
def override_settings() -> Settings:
    """Reload application settings from the testing environment."""
    return reload_settings()


@pytest.fixture
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


# Served script body, optionally with a response delay in seconds
ScriptRoute = Union[str, Tuple[str, float]]

SCRIPTS_KEY = web.AppKey("scripts", dict)
REQUESTS_KEY = web.AppKey("requests", list)


async def _serve_script(request: web.Request) -> web.Response:
    scripts: Dict[str, ScriptRoute] = request.app[SCRIPTS_KEY]
    request.app[REQUESTS_KEY].append(request)

    name = request.match_info["name"]
    if name not in scripts:
        raise web.HTTPNotFound(text=f"No script named {name}")

    route = scripts[name]
    body, delay = route if isinstance(route, tuple) else (route, 0.0)
    if delay:
        await asyncio.sleep(delay)
    return web.Response(text=body, content_type="text/plain")


@pytest.fixture
def served_scripts() -> Dict[str, ScriptRoute]:
    """Scripts served by ``script_server``, keyed by file name; tests fill it in."""
    return {}


@pytest_asyncio.fixture
async def script_server(served_scripts: Dict[str, ScriptRoute]) -> AsyncGenerator[TestServer, None]:
    """Local HTTP server serving IronScript sources under /scripts/."""
    app = web.Application()
    app[SCRIPTS_KEY] = served_scripts
    app[REQUESTS_KEY] = []
    app.router.add_get("/scripts/{name}", _serve_script)

    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def server_requests(script_server: TestServer) -> List[web.Request]:
    """Requests received by the script server."""
    return script_server.app[REQUESTS_KEY]


@pytest_asyncio.fixture
async def loader(script_server: TestServer) -> AsyncGenerator[SourceLoader, None]:
    """Source loader resolving relative URLs against the script server."""
    async with SourceLoader(base_url=str(script_server.make_url("/"))) as source_loader:
        yield source_loader


@pytest.fixture
def recording_executor() -> RecordingExecutor:
    """Executor that records transpiled code instead of running it."""
    return RecordingExecutor()


# Pytest configuration
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on file paths."""
    for item in items:
        # Add markers based on file path
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
