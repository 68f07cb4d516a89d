"""
Runtime Configuration

Central configuration for token issuance, proof parameters, the spent-set
ledger and service setup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass
class TokenConfig:
    """Limits on issued tokens."""
    max_denomination: int = 32


@dataclass
class ProofConfig:
    """Spend proof parameters."""
    repetitions: int = 219
    verify_workers: int = 4


@dataclass
class LedgerConfig:
    """Configuration for the double-spend ledger."""
    backend: str = "memory"  # "memory" | "sqlite"
    shards: int = 16
    expected_items: int = 1_000_000
    false_positive_rate: float = 1e-6
    sqlite_path: str = "divtokens_spent.db"


@dataclass
class IssuerConfig:
    """Configuration for the Exchange signing key."""
    key_path: Optional[str] = None
    key_size: int = 2048
    # Prepaid balances seeded at startup (account id -> units)
    accounts: dict[str, int] = field(default_factory=dict)


@dataclass
class HttpConfig:
    """Configuration for HTTP client."""
    timeout: float = 30.0
    base_url: str = "http://127.0.0.1:8000"


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for divtokens.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    token: TokenConfig = field(default_factory=TokenConfig)
    proof: ProofConfig = field(default_factory=ProofConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    issuer: IssuerConfig = field(default_factory=IssuerConfig)
    http: HttpConfig = field(default_factory=HttpConfig)
    log_level: str = "INFO"
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - DIVTOKENS_MAX_DENOMINATION: Largest token depth the Exchange issues
        - DIVTOKENS_PROOF_REPETITIONS: Proof repetitions (soundness (2/3)^reps)
        - DIVTOKENS_VERIFY_WORKERS: Threads used for batch verification
        - DIVTOKENS_LEDGER_BACKEND: "memory" or "sqlite"
        - DIVTOKENS_LEDGER_SHARDS: Shard count of the in-memory spent set
        - DIVTOKENS_LEDGER_PATH: SQLite spent-set path
        - DIVTOKENS_ISSUER_KEY: Path to the issuer PEM key
        - DIVTOKENS_EXCHANGE_URL: Base URL of the Exchange API
        - DIVTOKENS_LOG_LEVEL: Logging level
        """
        overrides: dict[str, Any] = {}

        # Token settings
        if os.getenv("DIVTOKENS_MAX_DENOMINATION"):
            overrides.setdefault("token", {})["max_denomination"] = int(os.getenv("DIVTOKENS_MAX_DENOMINATION"))

        # Proof settings
        if os.getenv("DIVTOKENS_PROOF_REPETITIONS"):
            overrides.setdefault("proof", {})["repetitions"] = int(os.getenv("DIVTOKENS_PROOF_REPETITIONS"))
        if os.getenv("DIVTOKENS_VERIFY_WORKERS"):
            overrides.setdefault("proof", {})["verify_workers"] = int(os.getenv("DIVTOKENS_VERIFY_WORKERS"))

        # Ledger settings
        if os.getenv("DIVTOKENS_LEDGER_BACKEND"):
            overrides.setdefault("ledger", {})["backend"] = os.getenv("DIVTOKENS_LEDGER_BACKEND")
        if os.getenv("DIVTOKENS_LEDGER_SHARDS"):
            overrides.setdefault("ledger", {})["shards"] = int(os.getenv("DIVTOKENS_LEDGER_SHARDS"))
        if os.getenv("DIVTOKENS_LEDGER_PATH"):
            overrides.setdefault("ledger", {})["sqlite_path"] = os.getenv("DIVTOKENS_LEDGER_PATH")

        # Issuer key
        if os.getenv("DIVTOKENS_ISSUER_KEY"):
            overrides.setdefault("issuer", {})["key_path"] = os.getenv("DIVTOKENS_ISSUER_KEY")

        # Exchange endpoint
        if os.getenv("DIVTOKENS_EXCHANGE_URL"):
            overrides.setdefault("http", {})["base_url"] = os.getenv("DIVTOKENS_EXCHANGE_URL")

        if os.getenv("DIVTOKENS_LOG_LEVEL"):
            overrides["log_level"] = os.getenv("DIVTOKENS_LOG_LEVEL").upper()

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        overrides = cls._get_env_overrides()
        return cls.from_dict(overrides)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "RuntimeConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        token_data = data.get("token", {})
        proof_data = data.get("proof", {})
        ledger_data = data.get("ledger", {})
        issuer_data = data.get("issuer", {})
        http_data = data.get("http", {})

        return cls(
            token=TokenConfig(**token_data) if token_data else TokenConfig(),
            proof=ProofConfig(**proof_data) if proof_data else ProofConfig(),
            ledger=LedgerConfig(**ledger_data) if ledger_data else LedgerConfig(),
            issuer=IssuerConfig(**issuer_data) if issuer_data else IssuerConfig(),
            http=HttpConfig(**http_data) if http_data else HttpConfig(),
            log_level=str(data.get("log_level", "INFO")).upper(),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        import copy
        new_config = copy.deepcopy(self)

        for section in ("token", "proof", "ledger", "issuer", "http"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)

        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]

        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "token": {
                "max_denomination": self.token.max_denomination,
            },
            "proof": {
                "repetitions": self.proof.repetitions,
                "verify_workers": self.proof.verify_workers,
            },
            "ledger": {
                "backend": self.ledger.backend,
                "shards": self.ledger.shards,
                "expected_items": self.ledger.expected_items,
                "false_positive_rate": self.ledger.false_positive_rate,
                "sqlite_path": self.ledger.sqlite_path,
            },
            "issuer": {
                "key_path": self.issuer.key_path,
                "key_size": self.issuer.key_size,
                "accounts": dict(self.issuer.accounts),
            },
            "http": {
                "timeout": self.http.timeout,
                "base_url": self.http.base_url,
            },
            "log_level": self.log_level,
            "extra": self.extra,
        }

