"""Application Configuration

Type-safe configuration using Pydantic Settings for environment variable handling.
Everything here is process-wide and read-only once loaded; request handlers
resolve it through ``get_settings`` so tests can swap in their own instance.

Sections:
- Application metadata and HTTP concerns (CORS, log level)
- Model endpoint (credential, base URL override, sampling budget)
- Domain tool endpoints and their time budgets
- Process-backed tool providers (vision)
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

DEFAULT_MODEL_BASE_URL = "https://api.z.ai/api/coding/paas/v4"


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # =============================================================================
    # APPLICATION
    # =============================================================================

    app_name: str = Field(default="Briefing Desk", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    app_description: str = Field(
        default="Streams long-form briefings built with web search, page reading and vision tools.",
        alias="APP_DESCRIPTION",
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # =============================================================================
    # API CONFIGURATION
    # =============================================================================

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Settings
    cors_origins: str = Field(default="", alias="CORS_ORIGINS")
    cors_credentials: bool = Field(default=False, alias="CORS_CREDENTIALS")
    cors_methods: str = Field(default="GET,POST", alias="CORS_METHODS")
    cors_headers: str = Field(default="*", alias="CORS_HEADERS")

    # =============================================================================
    # LLM CONFIGURATION
    # =============================================================================

    # Z.AI credential; ZAI_API_KEY is accepted as a fallback name
    zai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Z_AI_API_KEY", "ZAI_API_KEY"),
    )
    glm_proxy_url: str | None = Field(default=None, alias="ZEKE_GLMPROXY_URL")
    llm_model: str = Field(default="glm-4.6", alias="LLM_MODEL")
    max_output_tokens: int = Field(default=8192, alias="MAX_OUTPUT_TOKENS")
    temperature: float = Field(default=0.35, alias="TEMPERATURE")
    max_stream_seconds: float = Field(default=60.0, alias="MAX_STREAM_SECONDS")

    # =============================================================================
    # DOMAIN TOOL ENDPOINTS
    # =============================================================================

    search_url: str = Field(
        default="https://api.z.ai/api/mcp/web_search_prime/mcp",
        alias="ZAI_MCP_SEARCH_URL",
    )
    reader_url: str = Field(
        default="https://api.z.ai/api/mcp/web_reader/mcp",
        alias="ZAI_MCP_READER_URL",
    )
    search_timeout_seconds: float = Field(default=30.0, alias="SEARCH_TIMEOUT_SECONDS")
    reader_timeout_seconds: float = Field(default=45.0, alias="READER_TIMEOUT_SECONDS")

    # =============================================================================
    # TOOL PROVIDERS
    # =============================================================================

    vision_enabled: bool = Field(default=True, alias="VISION_ENABLED")
    vision_command: str = Field(default="npx", alias="VISION_COMMAND")
    vision_args: str = Field(default="-y @z_ai/mcp-server", alias="VISION_ARGS")
    vision_mode: str = Field(default="ZAI", alias="VISION_MODE")
    provider_connect_timeout_seconds: float = Field(default=30.0, alias="PROVIDER_CONNECT_TIMEOUT_SECONDS")

    model_config = {"env_file": ".env", "case_sensitive": False, "extra": "ignore"}

    @property
    def has_api_key(self) -> bool:
        return bool(self.zai_api_key)

    @property
    def llm_base_url(self) -> str:
        """OpenAI-compatible base URL, honouring the local GLM proxy override."""
        if self.glm_proxy_url:
            return f"{self.glm_proxy_url.rstrip('/')}/v1"
        return DEFAULT_MODEL_BASE_URL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
