"""NFT Ledger — Application configuration via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class LedgerSettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "NFT_LEDGER_",
        "extra": "ignore",
    }

    # ── Collection ─────────────────────────────────────────────
    name: str = "NFT Ledger"
    symbol: str = "NFTL"
    base_uri: str = ""
    max_token_id: int = 10_000
    admin_principal: str = "admin"

    # ── Iteration bounds ───────────────────────────────────────
    max_mint_quantity: int = 100
    max_page_limit: int = 100

    # ── Event journal ──────────────────────────────────────────
    # Empty disables the journal.
    database_url: str = ""

    # ── API ────────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"


settings = LedgerSettings()
