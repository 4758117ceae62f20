"""
Unit test conftest - minimal setup for isolated unit tests.

Collaborators are replaced with AsyncMock/MagicMock; no database is used.
"""

import asyncio
import sys

import pytest


@pytest.fixture(autouse=True)
def _reset_event_loop_policy():
    """Ensure consistent event loop policy for unit tests."""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    yield
