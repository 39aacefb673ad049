"""Configuration management for the research oracle."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Reasoning service
    reasoning_provider: str = "auto"
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    google_api_key: Optional[str] = None

    default_llm_model_claude: str = "claude-sonnet-4-20250514"
    default_llm_model_openai: str = "gpt-4o"
    default_llm_model_gemini: str = "gemini-1.5-pro"
    analyst_max_tokens: int = 1024
    analyst_timeout_seconds: float = 60.0

    # Record store
    records_dir: str = "records"

    # Ledger (Solana) configuration
    solana_rpc_url: Optional[str] = None
    solana_private_key: Optional[str] = None
    oracle_program_id: str = "AriGWxj99R7PtrEn3dvszvVLDrSb8RLt6GEostKzLzFL"
    ledger_commitment: str = "confirmed"
    ledger_timeout_seconds: float = 30.0
    ledger_simulate: bool = False
    explorer_cluster: str = "devnet"
    default_deadline_days: int = 30

    # Logging Configuration
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def resolved_provider(self) -> str:
        """Provider name after resolving ``auto``."""
        name = self.reasoning_provider.lower()
        if name != "auto":
            return name
        return "claude" if self.anthropic_api_key else "offline"

    @property
    def ledger_configured(self) -> bool:
        return bool(self.solana_rpc_url and self.solana_private_key)


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings singleton instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
