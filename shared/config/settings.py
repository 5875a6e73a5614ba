"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    CLAUDE = "claude"
    OPENAI = "openai"


class MongoSettings(BaseSettings):
    """MongoDB configuration."""

    model_config = SettingsConfigDict(env_prefix="MONGODB_")

    host: str = "localhost"
    port: int = 27017
    user: str = "clawse"
    password: SecretStr = SecretStr("clawse_mongo_password")
    db: str = Field(default="clawse_compliance", alias="MONGODB_DB")
    max_pool_size: int = Field(default=20, ge=1)
    timeout_ms: int = Field(default=5000, ge=100)

    @property
    def uri(self) -> str:
        """Generate MongoDB connection URI."""
        pwd = self.password.get_secret_value()
        return f"mongodb://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}?authSource=admin"


class PersistenceSettings(BaseSettings):
    """
    Rule persistence configuration.

    With persistence disabled the engine runs in real-time only mode:
    rules are never read from or written to the document store.
    """

    model_config = SettingsConfigDict(env_prefix="PERSISTENCE_")

    enabled: bool = False
    rules_collection: str = "compliance_rules"
    dedup_collection: str = "rule_deduplication"
    batch_size: int = Field(default=500, ge=1)


class ClaudeSettings(BaseSettings):
    """Anthropic Claude API configuration."""

    model_config = SettingsConfigDict(env_prefix="CLAUDE_")

    api_key: SecretStr = Field(
        default=SecretStr(""),
        alias="ANTHROPIC_API_KEY",
    )
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 8192


class OpenAISettings(BaseSettings):
    """OpenAI API configuration."""

    model_config = SettingsConfigDict(env_prefix="OPENAI_")

    api_key: SecretStr = SecretStr("")
    model: str = "gpt-4o-mini"
    max_tokens: int = 8192


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: LLMProvider = LLMProvider.OPENAI
    temperature: float = 0.2
    max_retries: int = 3
    timeout_seconds: int = 60

    # Provider-specific settings
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)


class SourceSettings(BaseSettings):
    """Rule source selection and per-call limits."""

    model_config = SettingsConfigDict(env_prefix="SOURCES_")

    # Comma separated source kinds, see services.compliance_engine.sources.registry
    enabled: str = "ai_generated,regulations_gov,federal_register,agency_guidance"
    call_timeout_seconds: float = Field(default=30.0, gt=0)
    min_request_interval_seconds: float = Field(default=1.0, ge=0)
    retry_count: int = Field(default=2, ge=1)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    max_results_per_source: int = Field(default=25, ge=1)
    user_agent: str = "ClawseBot/1.0 (Compliance Discovery; compliance@clawse.io)"

    @property
    def enabled_list(self) -> list[str]:
        """Parse enabled string into list."""
        return [s.strip().lower() for s in self.enabled.split(",") if s.strip()]


class RegulationsGovSettings(BaseSettings):
    """Regulations.gov v4 API configuration."""

    model_config = SettingsConfigDict(env_prefix="REGULATIONS_GOV_")

    api_key: SecretStr = Field(
        default=SecretStr(""),
        alias="REGULATIONS_API_KEY",
    )
    base_url: str = "https://api.regulations.gov/v4"
    page_size: int = Field(default=25, ge=5, le=250)


class FederalRegisterSettings(BaseSettings):
    """Federal Register v1 API configuration."""

    model_config = SettingsConfigDict(env_prefix="FEDERAL_REGISTER_")

    base_url: str = "https://www.federalregister.gov/api/v1"
    page_size: int = Field(default=20, ge=1, le=1000)


class PlannerSettings(BaseSettings):
    """Query planner configuration."""

    model_config = SettingsConfigDict(env_prefix="PLANNER_")

    split_industry_queries: bool = True


class DedupSettings(BaseSettings):
    """Deduplication heuristics."""

    model_config = SettingsConfigDict(env_prefix="DEDUP_")

    enable_near_duplicates: bool = True
    title_similarity_threshold: float = Field(default=0.9, ge=0.0, le=1.0)


class RelevanceSettings(BaseSettings):
    """
    Relevance screening of search hits.

    Official search APIs return everything that mentions the query terms;
    hits about other industries are screened out before matching. The
    LLM classifier is optional and falls back to keyword scoring.
    """

    model_config = SettingsConfigDict(env_prefix="RELEVANCE_")

    enabled: bool = True
    min_score: float = Field(default=0.2, ge=0.0, le=1.0)
    use_llm: bool = False
    llm_min_score: float = Field(default=0.8, ge=0.0, le=1.0)
    batch_size: int = Field(default=10, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)


class ReportSettings(BaseSettings):
    """Narrative report generation."""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    timeout_seconds: float = Field(default=45.0, gt=0)
    max_rules_in_prompt: int = Field(default=40, ge=1)


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO
    port: int = Field(default=8010, alias="COMPLIANCE_ENGINE_PORT")

    # Document store
    mongodb: MongoSettings = Field(default_factory=MongoSettings)
    persistence: PersistenceSettings = Field(default_factory=PersistenceSettings)

    # LLM configuration
    llm: LLMSettings = Field(default_factory=LLMSettings)

    # Rule sources
    sources: SourceSettings = Field(default_factory=SourceSettings)
    regulations_gov: RegulationsGovSettings = Field(default_factory=RegulationsGovSettings)
    federal_register: FederalRegisterSettings = Field(default_factory=FederalRegisterSettings)

    # Engine
    planner: PlannerSettings = Field(default_factory=PlannerSettings)
    dedup: DedupSettings = Field(default_factory=DedupSettings)
    relevance: RelevanceSettings = Field(default_factory=RelevanceSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Production deployment; logs are emitted as JSON."""
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
