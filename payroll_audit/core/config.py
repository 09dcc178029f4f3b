"""
Runtime configuration for payroll-audit.

Settings are resolved from, in increasing precedence: built-in defaults,
an optional YAML file, environment variables (a ``.env`` file is loaded
first if present) and explicit keyword overrides.

Expected YAML format:
```yaml
database:
  host: localhost
  port: 5432
  name: payroll
  user: payroll
  password: secret
  isolation_level: READ COMMITTED
  pool:
    min_size: 2
    max_size: 10
    timeout: 30

logging:
  level: INFO
  format: json
```
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from psycopg import IsolationLevel
from pydantic import BaseModel, Field, field_validator

ISOLATION_LEVELS: dict[str, IsolationLevel] = {
    "READ UNCOMMITTED": IsolationLevel.READ_UNCOMMITTED,
    "READ COMMITTED": IsolationLevel.READ_COMMITTED,
    "REPEATABLE READ": IsolationLevel.REPEATABLE_READ,
    "SERIALIZABLE": IsolationLevel.SERIALIZABLE,
}

# Environment variable -> (section, key)
ENV_VARS: dict[str, tuple[str, str]] = {
    "DB_HOST": ("database", "host"),
    "DB_PORT": ("database", "port"),
    "DB_NAME": ("database", "database"),
    "DB_USER": ("database", "user"),
    "DB_PASSWORD": ("database", "password"),
    "DB_ISOLATION_LEVEL": ("database", "isolation_level"),
    "DB_POOL_MIN_SIZE": ("database", "min_size"),
    "DB_POOL_MAX_SIZE": ("database", "max_size"),
    "DB_TIMEOUT": ("database", "timeout"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
}


def parse_isolation_level(value: str | IsolationLevel) -> IsolationLevel:
    """
    Parse an isolation level name such as "read committed" or "REPEATABLE_READ".

    Args:
        value: Level name (case-insensitive, spaces or underscores) or IsolationLevel

    Returns:
        Matching psycopg IsolationLevel

    Raises:
        ValueError: If the name is not a known isolation level
    """
    if isinstance(value, IsolationLevel):
        return value

    key = " ".join(str(value).replace("_", " ").upper().split())
    if key not in ISOLATION_LEVELS:
        raise ValueError(
            f"Unknown isolation level '{value}'. "
            f"Expected one of: {', '.join(ISOLATION_LEVELS)}"
        )
    return ISOLATION_LEVELS[key]


class DatabaseSettings(BaseModel):
    """
    Connection and pool settings for the payroll database.

    Attributes:
        host: Database host
        port: Database port
        database: Database name
        user: Database user
        password: Database password (required to open a pool)
        isolation_level: Default isolation level for units of work
        min_size: Minimum pool size
        max_size: Maximum pool size
        timeout: Connection timeout in seconds
    """

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = "payroll"
    user: str = "payroll"
    password: str | None = None
    isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED
    min_size: int = Field(default=2, ge=0)
    max_size: int = Field(default=10, ge=1)
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("isolation_level", mode="before")
    @classmethod
    def _parse_isolation_level(cls, value: Any) -> IsolationLevel:
        return parse_isolation_level(value)

    def pool_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for DatabaseConnectionPool"""
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "timeout": self.timeout,
            "isolation_level": self.isolation_level,
        }


class LoggingSettings(BaseModel):
    """Logging level and output format"""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class Settings(BaseModel):
    """Top-level application settings"""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _read_yaml(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    database = dict(config.get("database") or {})
    # Flatten the nested pool section and the "name" alias
    pool = database.pop("pool", None) or {}
    database.update(pool)
    if "name" in database:
        database["database"] = database.pop("name")

    return {
        "database": database,
        "logging": dict(config.get("logging") or {}),
    }


def load_settings(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings from defaults, YAML, environment and overrides.

    Args:
        config_path: Optional YAML configuration file
        env_file: Optional .env file (defaults to ./.env when present)
        **overrides: Database setting overrides, e.g. host="db", port=5433.
            None values are ignored.

    Returns:
        Resolved Settings

    Raises:
        FileNotFoundError: If config_path does not exist
        pydantic.ValidationError: If a resolved value is invalid
    """
    load_dotenv(env_file, override=False)

    sections: dict[str, dict[str, Any]] = {"database": {}, "logging": {}}
    if config_path is not None:
        for section, values in _read_yaml(config_path).items():
            sections[section].update(values)

    for env_var, (section, key) in ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            sections[section][key] = value

    sections["database"].update({k: v for k, v in overrides.items() if v is not None})

    return Settings(
        database=DatabaseSettings(**sections["database"]),
        logging=LoggingSettings(**sections["logging"]),
    )
