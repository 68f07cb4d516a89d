"""
Runtime Configuration Tests
Tests for core/config/runtime.py and divtokens_cli/config.py
"""
import pytest
import yaml

from core.config.runtime import LedgerConfig, RuntimeConfig
from core.ledger import ShardedSpentSet, SqliteSpentSet, create_spent_set
from core.redemption import Exchange
from divtokens_cli.config import get_default_config_template, load_config


ENV_VARS = [
    "DIVTOKENS_MAX_DENOMINATION",
    "DIVTOKENS_PROOF_REPETITIONS",
    "DIVTOKENS_VERIFY_WORKERS",
    "DIVTOKENS_LEDGER_BACKEND",
    "DIVTOKENS_LEDGER_SHARDS",
    "DIVTOKENS_LEDGER_PATH",
    "DIVTOKENS_ISSUER_KEY",
    "DIVTOKENS_EXCHANGE_URL",
    "DIVTOKENS_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestRuntimeConfig:
    def test_defaults(self):
        config = RuntimeConfig()

        assert config.token.max_denomination == 32
        assert config.proof.repetitions == 219
        assert config.ledger.backend == "memory"
        assert config.issuer.accounts == {}

    def test_from_dict_partial(self):
        config = RuntimeConfig.from_dict({"proof": {"repetitions": 12}, "log_level": "debug"})

        assert config.proof.repetitions == 12
        assert config.proof.verify_workers == 4
        assert config.log_level == "DEBUG"

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "divtokens.yaml"
        path.write_text(yaml.safe_dump({
            "ledger": {"backend": "sqlite", "sqlite_path": str(tmp_path / "spent.db")},
            "issuer": {"accounts": {"acme": 512}},
        }))
        config = RuntimeConfig.from_yaml(path)

        assert config.ledger.backend == "sqlite"
        assert config.issuer.accounts == {"acme": 512}

    def test_from_yaml_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RuntimeConfig.from_yaml(tmp_path / "absent.yaml")

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("DIVTOKENS_PROOF_REPETITIONS", "40")
        monkeypatch.setenv("DIVTOKENS_LEDGER_BACKEND", "sqlite")
        monkeypatch.setenv("DIVTOKENS_LOG_LEVEL", "warning")
        base = RuntimeConfig.from_dict({"proof": {"repetitions": 12, "verify_workers": 8}})
        config = base.with_env_overrides()

        assert config.proof.repetitions == 40
        assert config.proof.verify_workers == 8
        assert config.ledger.backend == "sqlite"
        assert config.log_level == "WARNING"
        assert base.proof.repetitions == 12

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DIVTOKENS_MAX_DENOMINATION", "20")
        monkeypatch.setenv("DIVTOKENS_ISSUER_KEY", "/keys/issuer.pem")
        config = RuntimeConfig.from_env()

        assert config.token.max_denomination == 20
        assert config.issuer.key_path == "/keys/issuer.pem"
        assert config.proof.repetitions == 219

    def test_no_overrides_returns_self(self):
        config = RuntimeConfig()
        assert config.with_env_overrides() is config

    def test_to_dict_round_trip(self):
        config = RuntimeConfig.from_dict({"issuer": {"accounts": {"acme": 64}}})
        again = RuntimeConfig.from_dict(config.to_dict())

        assert again.to_dict() == config.to_dict()


class TestLedgerFactory:
    def test_memory(self):
        spent = create_spent_set(LedgerConfig(shards=2, expected_items=100))
        assert isinstance(spent, ShardedSpentSet)

    def test_sqlite(self, tmp_path):
        spent = create_spent_set(LedgerConfig(backend="sqlite", sqlite_path=str(tmp_path / "s.db")))
        try:
            assert isinstance(spent, SqliteSpentSet)
        finally:
            spent.close()

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown ledger backend"):
            create_spent_set(LedgerConfig(backend="redis"))


class TestExchangeFromConfig:
    def test_seeded_accounts(self, keypair):
        config = RuntimeConfig.from_dict({
            "proof": {"repetitions": 8},
            "ledger": {"expected_items": 100, "shards": 2},
            "issuer": {"accounts": {"acme": 64}},
        })
        exchange = Exchange.from_config(config, keypair=keypair)
        try:
            assert exchange.issuer.accounts.balance("acme") == 64
            assert exchange.proofs.backend.repetitions == 8
            assert exchange.public_keys()[0].key_id == keypair.key_id.hex()
        finally:
            exchange.close()

    def test_key_from_path(self, keypair, tmp_path):
        path = keypair.save(tmp_path / "issuer.pem")
        config = RuntimeConfig.from_dict({
            "ledger": {"expected_items": 100, "shards": 2},
            "issuer": {"key_path": str(path)},
        })
        exchange = Exchange.from_config(config)
        try:
            assert exchange.keyring.keys()[0] == keypair.public
        finally:
            exchange.close()


class TestCliConfig:
    def test_load_explicit_path(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("proof:\n  repetitions: 5\n")

        assert load_config(path).proof.repetitions == 5

    def test_template_is_loadable(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text(get_default_config_template())

        assert RuntimeConfig.from_yaml(path).to_dict() == RuntimeConfig().to_dict()
