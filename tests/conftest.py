"""
Test Configuration
==================

Pytest fixtures for Clawse tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before settings are imported
os.environ["ENVIRONMENT"] = "testing"
os.environ["PERSISTENCE_ENABLED"] = "false"

from shared.models import BusinessProfile  # noqa: E402
from tests.helpers import StaticNarrative, StaticSource, make_rule  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def sample_profile_data() -> dict[str, Any]:
    """Profile payload as posted by the web form."""
    return {
        "businessName": "Golden Gate Tacos",
        "businessType": "LLC",
        "industry": "Restaurant",
        "state": "California",
        "employees": 12,
        "revenue": 850000,
        "businessDescription": "Fast casual taqueria with catering",
    }


@pytest.fixture
def sample_profile(sample_profile_data: dict[str, Any]) -> BusinessProfile:
    """LLC restaurant in California with 12 employees."""
    return BusinessProfile.from_payload(sample_profile_data)


@pytest.fixture
def federal_rule():
    return make_rule(
        "Federal Tax ID (EIN) Requirement",
        "Obtain an Employer Identification Number from the IRS.",
        authority="Internal Revenue Service",
        priority="high",
        applicability_criteria={"business_types": ["LLC", "Corporation"], "states": []},
    )


@pytest.fixture
def california_rule():
    return make_rule(
        "California Seller's Permit",
        "Register with CDTFA before selling taxable goods.",
        authority="California Department of Tax and Fee Administration",
        level="state",
        jurisdiction="CA",
        priority="critical",
        estimated_cost=0,
        applicability_criteria={
            "business_types": ["LLC"],
            "states": ["CA"],
            "employee_count": {"min": 1, "max": 50},
            "industries": ["restaurant"],
        },
    )


@pytest.fixture
def texas_rule():
    return make_rule(
        "Texas Franchise Tax Report",
        "File the annual franchise tax report with the Texas Comptroller.",
        authority="Texas Comptroller",
        level="state",
        jurisdiction="TX",
        priority="high",
        applicability_criteria={"states": ["TX"]},
    )


@pytest.fixture
def narrative() -> StaticNarrative:
    return StaticNarrative(text="# Compliance Report\n\nAll good.")


@pytest.fixture
def engine_container(federal_rule, california_rule, texas_rule, narrative):
    """Engine wired to fake sources and narrative, persistence disabled."""
    from services.compliance_engine.container import EngineContainer

    sources = [
        StaticSource("primary", default=[federal_rule, california_rule]),
        StaticSource("secondary", default=[texas_rule]),
    ]
    return EngineContainer.from_components(sources, narrative=narrative)


@pytest_asyncio.fixture
async def compliance_engine_client(engine_container) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Compliance Engine Service."""
    from services.compliance_engine.main import create_app

    app = create_app(container=engine_container)
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as client:
        yield client
