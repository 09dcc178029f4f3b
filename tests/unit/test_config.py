"""
Unit tests for settings resolution
"""
import pytest
from psycopg import IsolationLevel
from pydantic import ValidationError

from payroll_audit.core.config import load_settings, parse_isolation_level


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "payroll.yaml"
    path.write_text(
        """
database:
  host: db.internal
  port: 6543
  name: payroll_prod
  user: auditor
  password: from-yaml
  isolation_level: repeatable read
  pool:
    min_size: 1
    max_size: 4
    timeout: 5

logging:
  level: debug
  format: text
"""
    )
    return path


@pytest.fixture
def no_dotenv(tmp_path):
    """An empty .env file so a developer's local one is never picked up"""
    path = tmp_path / "empty.env"
    path.write_text("")
    return path


@pytest.mark.unit
class TestParseIsolationLevel:

    @pytest.mark.parametrize("value, expected", [
        ("READ COMMITTED", IsolationLevel.READ_COMMITTED),
        ("read uncommitted", IsolationLevel.READ_UNCOMMITTED),
        ("REPEATABLE_READ", IsolationLevel.REPEATABLE_READ),
        ("  serializable ", IsolationLevel.SERIALIZABLE),
        (IsolationLevel.SERIALIZABLE, IsolationLevel.SERIALIZABLE),
    ])
    def test_known_levels(self, value, expected):
        assert parse_isolation_level(value) == expected

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown isolation level 'snapshot'"):
            parse_isolation_level("snapshot")


@pytest.mark.unit
class TestLoadSettings:

    def test_defaults(self, clean_env, no_dotenv):
        settings = load_settings(env_file=no_dotenv)

        assert settings.database.host == "localhost"
        assert settings.database.port == 5432
        assert settings.database.database == "payroll"
        assert settings.database.password is None
        assert settings.database.isolation_level == IsolationLevel.READ_COMMITTED
        assert settings.logging.level == "INFO"
        assert settings.logging.format == "json"

    def test_yaml_file(self, clean_env, no_dotenv, config_file):
        settings = load_settings(config_path=config_file, env_file=no_dotenv)

        assert settings.database.host == "db.internal"
        assert settings.database.port == 6543
        assert settings.database.database == "payroll_prod"
        assert settings.database.user == "auditor"
        assert settings.database.isolation_level == IsolationLevel.REPEATABLE_READ
        assert settings.database.max_size == 4
        assert settings.database.timeout == 5.0
        assert settings.logging.level == "DEBUG"
        assert settings.logging.format == "text"

    def test_environment_overrides_yaml(self, clean_env, no_dotenv, config_file):
        clean_env.setenv("DB_HOST", "env-host")
        clean_env.setenv("DB_PORT", "7000")
        clean_env.setenv("LOG_FORMAT", "json")

        settings = load_settings(config_path=config_file, env_file=no_dotenv)

        assert settings.database.host == "env-host"
        assert settings.database.port == 7000
        assert settings.database.user == "auditor"
        assert settings.logging.format == "json"

    def test_explicit_overrides_win(self, clean_env, no_dotenv, config_file):
        clean_env.setenv("DB_HOST", "env-host")

        settings = load_settings(
            config_path=config_file,
            env_file=no_dotenv,
            host="cli-host",
            port=None,
            isolation_level="SERIALIZABLE",
        )

        assert settings.database.host == "cli-host"
        assert settings.database.port == 6543
        assert settings.database.isolation_level == IsolationLevel.SERIALIZABLE

    def test_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DB_PASSWORD=from-dotenv\n")
        # load_dotenv writes os.environ directly; make monkeypatch restore it
        clean_env.setenv("DB_PASSWORD", "placeholder")
        clean_env.delenv("DB_PASSWORD")

        settings = load_settings(env_file=env_file)

        assert settings.database.password == "from-dotenv"

    def test_missing_config_file(self, clean_env, no_dotenv, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(config_path=tmp_path / "missing.yaml", env_file=no_dotenv)

    def test_invalid_isolation_level(self, clean_env, no_dotenv):
        clean_env.setenv("DB_ISOLATION_LEVEL", "eventual")

        with pytest.raises(ValidationError):
            load_settings(env_file=no_dotenv)

    def test_invalid_log_level(self, clean_env, no_dotenv):
        clean_env.setenv("LOG_LEVEL", "verbose")

        with pytest.raises(ValidationError):
            load_settings(env_file=no_dotenv)

    def test_pool_kwargs(self, clean_env, no_dotenv, config_file):
        kwargs = load_settings(config_path=config_file, env_file=no_dotenv).database.pool_kwargs()

        assert kwargs["database"] == "payroll_prod"
        assert kwargs["password"] == "from-yaml"
        assert kwargs["min_size"] == 1
