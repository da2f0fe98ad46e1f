"""
Configuration for the P&L reconciliation system.
"""

# Load environment variables FIRST
from dotenv import load_dotenv
load_dotenv()

import os
from typing import List, Optional


def _env_list(name: str, default: str) -> List[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


class Config:
    """Base configuration."""

    # LLM Configuration
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openai")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    LLM_MOCK_MODE: bool = os.getenv("LLM_MOCK_MODE", "false").lower() == "true"  # Mock mode for offline runs
    LLM_API_KEY: str = os.getenv("LLM_API_KEY", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", os.getenv("LLM_API_KEY", ""))
    LLM_API_BASE: Optional[str] = os.getenv("LLM_API_BASE", None)
    LLM_TEMPERATURE: float = 0.0  # Matching must be deterministic
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "150"))
    LLM_TIMEOUT: int = int(os.getenv("LLM_TIMEOUT", "30"))

    # Oracle retry policy
    ORACLE_MAX_ATTEMPTS: int = int(os.getenv("ORACLE_MAX_ATTEMPTS", "2"))
    ORACLE_RETRY_DELAY: float = float(os.getenv("ORACLE_RETRY_DELAY", "2.0"))

    # Match policy
    # 0.8 for one authoritative list, 0.5 for a merged multi-collection search
    MATCH_SCOPE: str = os.getenv("MATCH_SCOPE", "single")
    MATCH_THRESHOLD_SINGLE: float = float(os.getenv("MATCH_THRESHOLD_SINGLE", "0.8"))
    MATCH_THRESHOLD_MERGED: float = float(os.getenv("MATCH_THRESHOLD_MERGED", "0.5"))
    RECONCILE_COLLECTIONS: List[str] = _env_list("RECONCILE_COLLECTIONS", "Clients")

    # Batching and pacing (seconds)
    BATCH_SIZE: int = int(os.getenv("BATCH_SIZE", "10"))
    PER_CALL_DELAY: float = float(os.getenv("PER_CALL_DELAY", "1.0"))
    PER_BATCH_DELAY: float = float(os.getenv("PER_BATCH_DELAY", "5.0"))
    TEST_MODE_LIMIT: int = int(os.getenv("TEST_MODE_LIMIT", "10"))

    # Ledgers
    TRANSACTIONS_PATH: str = os.getenv("TRANSACTIONS_PATH", os.path.join("data", "invoices.csv"))
    WORKBOOK_DIR: str = os.getenv("WORKBOOK_DIR", os.path.join("data", "pl"))
    TX_NAME_COLUMN: str = os.getenv("TX_NAME_COLUMN", "Client")
    TX_AMOUNT_COLUMN: str = os.getenv("TX_AMOUNT_COLUMN", "Suma")
    TX_STATUS_COLUMN: str = os.getenv("TX_STATUS_COLUMN", "Match Status")
    TX_REFERENCE_COLUMN: str = os.getenv("TX_REFERENCE_COLUMN", "Matched Reference")
    PL_NAME_COLUMN: str = os.getenv("PL_NAME_COLUMN", "Name")

    # Audit trail
    AUDIT_LOG_PATH: str = os.getenv("AUDIT_LOG_PATH", os.path.join("data", "audit", "reconciliation_audit.jsonl"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: str = os.getenv("LOG_FILE", "pl_reconciliation.log")

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))
    API_DEBUG: bool = os.getenv("API_DEBUG", "false").lower() == "true"

    def threshold_for_scope(self, scope: str) -> float:
        """Default acceptance threshold for a matching scope."""
        if scope == "merged":
            return self.MATCH_THRESHOLD_MERGED
        return self.MATCH_THRESHOLD_SINGLE

    @classmethod
    def validate(cls) -> None:
        """Validate configuration."""
        if cls.LLM_PROVIDER not in ["openai", "gemini", "mock"]:
            raise ValueError(f"Invalid LLM_PROVIDER: {cls.LLM_PROVIDER}")

        if not cls.LLM_MOCK_MODE:
            if cls.LLM_PROVIDER == "openai" and not cls.LLM_API_KEY:
                raise ValueError("LLM_API_KEY must be set for OpenAI provider")

            if cls.LLM_PROVIDER == "gemini" and not cls.GOOGLE_API_KEY:
                raise ValueError("GOOGLE_API_KEY must be set for Gemini provider")

        if cls.MATCH_SCOPE not in ["single", "merged"]:
            raise ValueError(f"Invalid MATCH_SCOPE: {cls.MATCH_SCOPE}")

        for name in ("MATCH_THRESHOLD_SINGLE", "MATCH_THRESHOLD_MERGED"):
            value = getattr(cls, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        if cls.BATCH_SIZE < 1:
            raise ValueError(f"BATCH_SIZE must be positive, got {cls.BATCH_SIZE}")

        if cls.ORACLE_MAX_ATTEMPTS < 1:
            raise ValueError(f"ORACLE_MAX_ATTEMPTS must be positive, got {cls.ORACLE_MAX_ATTEMPTS}")


class DevelopmentConfig(Config):
    """Development configuration."""
    LOG_LEVEL = "DEBUG"
    API_DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    LOG_LEVEL = "INFO"
    API_DEBUG = False


class TestConfig(Config):
    """Test configuration."""
    LLM_PROVIDER = "mock"
    LLM_MOCK_MODE = True
    LOG_LEVEL = "DEBUG"
    LOG_FILE = ""
    ORACLE_RETRY_DELAY = 0.0
    PER_CALL_DELAY = 0.0
    PER_BATCH_DELAY = 0.0


def get_config(env: str = None) -> Config:
    """Get configuration based on environment."""
    if env is None:
        env = os.getenv("ENV", "development").lower()

    if env == "production":
        config = ProductionConfig()
    elif env == "test":
        config = TestConfig()
    else:
        config = DevelopmentConfig()

    # Validate configuration on creation
    config.validate()
    return config
