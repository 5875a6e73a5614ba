"""
Tests for the Engine Container
==============================

Tests for:
- Startup configuration errors
- Resource release at shutdown and after a failed startup
- Relevance screen configuration
- State name resolution used for location matching

Version: 0.1.0
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr

from shared.config import settings
from shared.database import MongoDBClient
from shared.errors import ConfigurationError
from shared.llm import reset_llm_provider
from services.compliance_engine import container as container_module
from services.compliance_engine.container import EngineContainer, build_relevance_screen
from services.compliance_engine.jurisdictions import same_state, state_code, state_name
from tests.helpers import StaticLLMProvider, StaticSource


class TestEngineContainer:
    """Tests for EngineContainer."""

    @pytest.mark.asyncio
    async def test_ai_source_without_credentials_is_fatal(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.sources, "enabled", "ai_generated,agency_guidance")
        monkeypatch.setattr(settings.llm.openai, "api_key", SecretStr(""))
        monkeypatch.setattr(settings.llm.claude, "api_key", SecretStr(""))
        reset_llm_provider()

        with pytest.raises(ConfigurationError):
            await EngineContainer.create()

    @pytest.mark.asyncio
    async def test_unknown_source_is_fatal(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.sources, "enabled", "agency_guidance,carrier_pigeon")

        with pytest.raises(ConfigurationError):
            await EngineContainer.create()

    @pytest.mark.asyncio
    async def test_close_releases_sources_once(self) -> None:
        source = StaticSource("only")
        container = EngineContainer.from_components([source])

        await container.close()
        await container.close()

        assert source.closed is True

    @pytest.mark.asyncio
    async def test_failed_source_setup_closes_http_client(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.sources, "enabled", "federal_register")
        http_client = MagicMock()
        http_client.aclose = AsyncMock()

        with (
            patch.object(container_module.httpx, "AsyncClient", return_value=http_client),
            patch.object(
                container_module, "build_sources", side_effect=RuntimeError("bad source config")
            ),
            pytest.raises(RuntimeError),
        ):
            await EngineContainer.create(provider=StaticLLMProvider())

        http_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_index_creation_releases_clients(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.sources, "enabled", "agency_guidance")
        monkeypatch.setattr(settings.persistence, "enabled", True)
        http_client = MagicMock()
        http_client.aclose = AsyncMock()

        with (
            patch.object(container_module.httpx, "AsyncClient", return_value=http_client),
            patch.object(MongoDBClient, "get_client"),
            patch.object(
                MongoDBClient, "create_indexes", AsyncMock(side_effect=ConnectionError("refused"))
            ),
            patch.object(MongoDBClient, "close", AsyncMock()) as close_mongo,
            pytest.raises(ConnectionError),
        ):
            await EngineContainer.create(provider=StaticLLMProvider())

        http_client.aclose.assert_awaited_once()
        close_mongo.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_builds_relevance_screen(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.sources, "enabled", "agency_guidance")

        container = await EngineContainer.create(provider=StaticLLMProvider())
        try:
            assert container.analyzer.relevance is not None
            assert container.analyzer.relevance.classifier is None
        finally:
            await container.close()

    def test_relevance_screen_disabled(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.relevance, "enabled", False)

        assert build_relevance_screen(StaticLLMProvider()) is None

    def test_llm_classifier_needs_a_provider(self, monkeypatch) -> None:
        monkeypatch.setattr(settings.relevance, "use_llm", True)

        assert build_relevance_screen(None).classifier is None
        assert build_relevance_screen(StaticLLMProvider()).classifier is not None


class TestJurisdictions:
    """Tests for state name and code resolution."""

    @pytest.mark.parametrize("value", ["CA", "ca", "California", " california "])
    def test_state_code(self, value: str) -> None:
        assert state_code(value) == "CA"

    def test_state_name(self) -> None:
        assert state_name("dc") == "District of Columbia"
        assert state_name("Ontario") is None

    def test_same_state(self) -> None:
        assert same_state("TX", "Texas")
        assert not same_state("TX", "California")
        assert same_state("Springfield", "springfield")
        assert not same_state("", "CA")

    def test_non_text_values_are_not_states(self) -> None:
        assert state_code(6) is None
        assert not same_state(6, "CA")
