"""
Pytest configuration and shared fixtures.
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from transmission_injector.config import Settings, reset_runtime_config, set_runtime_config
from transmission_injector.rpc import TransmissionRpc

RPC_URL = "http://localhost:9091/transmission/rpc"
INFO_HASH = "0123456789abcdef0123456789abcdef01234567"


def async_context(value):
    """Wrap value in an async context manager mock."""
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def clean_runtime_config():
    """Make sure no test leaks a runtime config."""
    reset_runtime_config()
    yield
    reset_runtime_config()


@pytest.fixture
def settings():
    """Settings pointing at a local daemon with fast timeouts."""
    settings = Settings(
        transmission_rpc_url=RPC_URL,
        cross_seed_tag="cross-seed",
        rpc_timeout=5.0,
    )
    set_runtime_config(settings)
    return settings


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest.fixture
def mock_response():
    """Create a factory for mock aiohttp responses."""
    def _create_response(json_data=None, status=200, text=None, headers=None):
        response = MagicMock()
        response.status = status
        response.headers = headers or {}
        body = text if text is not None else json.dumps(json_data)
        response.text = AsyncMock(return_value=body)
        return response
    return _create_response


@pytest.fixture
def rpc(settings):
    """RPC client reading the test settings."""
    return TransmissionRpc(lambda: settings)


@pytest.fixture
def http(rpc):
    """
    Fake the per-call aiohttp session of the rpc fixture.

    Queue responses (or exceptions) on http.responses; every post pops one.
    """
    session = MagicMock()
    session.responses = []

    def _post(*args, **kwargs):
        response = session.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return async_context(response)

    session.post = MagicMock(side_effect=_post)
    session.sent = lambda: [json.loads(c.kwargs["data"]) for c in session.post.call_args_list]
    session.headers = lambda: [c.kwargs["headers"] for c in session.post.call_args_list]

    with patch.object(rpc, "_open_session", side_effect=lambda timeout: async_context(session)):
        yield session


@pytest.fixture
def success(mock_response):
    """Create a factory for successful RPC envelopes."""
    def _create(arguments=None, result="success"):
        return mock_response({"result": result, "arguments": arguments or {}})
    return _create


@pytest.fixture
def challenge(mock_response):
    """Create a factory for 409 session id challenges."""
    def _create(session_id="session-1"):
        headers = {"X-Transmission-Session-Id": session_id} if session_id else {}
        return mock_response(text="<h1>409: Conflict</h1>", status=409, headers=headers)
    return _create


# ============================================================================
# Logging Fixtures
# ============================================================================

@pytest.fixture
def clean_logging():
    """Clean up logging handlers before and after test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level

    yield

    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in original_handlers:
        root.addHandler(handler)
    root.setLevel(original_level)
