"""
Pytest configuration for web framework adapter tests.
"""

import pytest
from tork_governance import Tork


@pytest.fixture
def tork_instance():
    """Create a Tork instance for testing."""
    return Tork()


@pytest.fixture
def deny_tork():
    """Create a Tork instance that denies content with PII."""
    return Tork(default_action="deny")


@pytest.fixture
def escalate_tork():
    """Create a Tork instance that escalates content with PII."""
    return Tork(default_action="escalate")


@pytest.fixture
def mock_scope():
    """Create a mock ASGI scope."""
    return {
        "type": "http",
        "method": "POST",
        "path": "/api/chat",
        "headers": [(b"content-type", b"application/json")],
        "state": {},
    }
