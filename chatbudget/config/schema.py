"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PresetName = Literal["default", "conservative", "aggressive"]


class CompressionConfig(BaseModel):
    """Parameters controlling how history is compacted to fit a token budget."""

    model_config = ConfigDict(frozen=True)

    keep_recent_messages: int = Field(default=10, ge=0)  # Always kept verbatim
    summary_chunk_size: int = Field(default=10, ge=0)  # Informational only
    max_tokens: int = Field(default=4000, ge=1)  # Ceiling for the optimized context
    summary_max_tokens: int = Field(default=200, ge=0)  # Ceiling for generated summary text
    enable_summary_generation: bool = True
    fallback_to_truncation: bool = True

    @classmethod
    def preset(cls, name: str) -> "CompressionConfig":
        """Look up a named preset: default, conservative or aggressive."""
        try:
            return PRESETS[name]
        except KeyError:
            raise ValueError(
                f"Unknown compression preset '{name}'. Available: {', '.join(PRESETS)}"
            ) from None

    def needs_compression(self, message_count: int) -> bool:
        return message_count > self.keep_recent_messages

    def summary_message_count(self, total_messages: int) -> int:
        """How many of the oldest messages fall outside the recent window."""
        return max(0, total_messages - self.keep_recent_messages)


PRESETS: dict[str, CompressionConfig] = {
    "default": CompressionConfig(),
    # Limited context windows
    "conservative": CompressionConfig(
        keep_recent_messages=15,
        summary_chunk_size=8,
        max_tokens=3000,
        summary_max_tokens=150,
    ),
    # Larger context windows
    "aggressive": CompressionConfig(
        keep_recent_messages=5,
        summary_chunk_size=15,
        max_tokens=8000,
        summary_max_tokens=300,
    ),
}


class CompressionSettings(BaseModel):
    """User-facing compression settings: a preset plus optional overrides."""
    preset: PresetName = "default"
    keep_recent_messages: int | None = Field(default=None, ge=0)
    max_tokens: int | None = Field(default=None, ge=1)
    summary_max_tokens: int | None = Field(default=None, ge=0)
    enable_summary_generation: bool | None = None
    fallback_to_truncation: bool | None = None

    def resolve(self) -> CompressionConfig:
        """Apply the non-null overrides on top of the chosen preset."""
        overrides = self.model_dump(exclude={"preset"}, exclude_none=True)
        base = CompressionConfig.preset(self.preset)
        if not overrides:
            return base
        return CompressionConfig(**{**base.model_dump(), **overrides})


class AgentDefaults(BaseModel):
    """Default model configuration."""
    model: str = "deepseek/deepseek-chat"
    max_tokens: int = 4096
    temperature: float = 0.3  # Summaries favour determinism


class AgentsConfig(BaseModel):
    """Agent configuration."""
    defaults: AgentDefaults = Field(default_factory=AgentDefaults)


class ProviderConfig(BaseModel):
    """LLM provider configuration."""
    api_key: str = ""
    api_base: str | None = None


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""
    deepseek: ProviderConfig = Field(default_factory=ProviderConfig)
    openai: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig)


class SplitConfig(BaseModel):
    """Outgoing message splitting."""
    limit: int = Field(default=3000, ge=1)  # Characters per part


class UsageConfig(BaseModel):
    """Token usage indicator configuration."""
    context_limit: int = Field(default=64_000, ge=1)  # DeepSeek V3 context window


class Config(BaseSettings):
    """Root configuration for chatbudget."""

    model_config = SettingsConfigDict(env_prefix="CHATBUDGET_", env_nested_delimiter="__")

    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    compression: CompressionSettings = Field(default_factory=CompressionSettings)
    split: SplitConfig = Field(default_factory=SplitConfig)
    usage: UsageConfig = Field(default_factory=UsageConfig)

    def get_api_key(self) -> str | None:
        """Get the API key for the provider named by the model prefix."""
        model = self.agents.defaults.model
        name = model.split("/")[0] if "/" in model else "deepseek"
        provider = getattr(self.providers, name, None)
        if provider and provider.api_key:
            return provider.api_key
        return (
            self.providers.deepseek.api_key or
            self.providers.openai.api_key or
            self.providers.anthropic.api_key or
            None
        )

    def get_api_base(self) -> str | None:
        """Get API base URL if a provider has a custom base configured."""
        for provider in [self.providers.deepseek, self.providers.openai, self.providers.anthropic]:
            if provider.api_base:
                return provider.api_base
        return None
