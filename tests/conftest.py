"""
Pytest configuration and shared fixtures for divtokens tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

_common = importlib.import_module("fixtures.common")

make_keypair = _common.make_keypair
make_token = _common.make_token
make_proofs = _common.make_proofs
make_exchange = _common.make_exchange
make_scenario = _common.make_scenario


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(scope="session")
def keypair():
    """Provide the shared issuer key pair."""
    return make_keypair()


@pytest.fixture
def proofs():
    """Provide a low-repetition spend proof system."""
    return make_proofs()


@pytest.fixture
def token(keypair):
    """Provide a fresh depth-4 token signed by the shared key."""
    return make_token(keypair=keypair)


@pytest.fixture
def exchange(keypair):
    """Provide an in-process Exchange with one funded account."""
    ex = make_exchange(keypair=keypair)
    yield ex
    ex.close()


@pytest.fixture
def scenario(exchange):
    """Provide a Holder and two Publishers wired to the exchange fixture."""
    return make_scenario(exchange=exchange)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
