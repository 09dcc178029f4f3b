"""
Unit tests for admin CLI argument handling and formatting
"""
from argparse import Namespace
from datetime import datetime
from decimal import Decimal

import pytest

from payroll_audit.cli import admin_cli
from payroll_audit.cli.admin_cli import (
    build_parser,
    delete_department_command,
    drop_schema_command,
    format_salary,
    format_timestamp,
    main,
)
from payroll_audit.database.connection import DatabaseConnectionPool


@pytest.mark.unit
class TestFormatting:

    def test_format_salary(self):
        assert format_salary(120000) == "120,000"
        assert format_salary(Decimal("80000.50")) == "80,000.50"
        assert format_salary(None) == "NULL"

    def test_format_timestamp(self):
        assert format_timestamp(datetime(2024, 3, 1, 9, 30, 5)) == "2024-03-01 09:30:05"
        assert format_timestamp(None) == "N/A"
        assert format_timestamp("yesterday") == "yesterday"


@pytest.mark.unit
class TestParser:

    def test_set_salary(self):
        args = build_parser().parse_args(["set-salary", "--emp-id", "6", "--salary", "130000"])

        assert args.command == "set-salary"
        assert args.emp_id == 6
        assert args.salary == 130000
        assert args.db_host is None

    def test_isolation_level_is_case_insensitive(self):
        args = build_parser().parse_args(["--isolation-level", "repeatable read", "payroll-report"])
        assert args.isolation_level == "REPEATABLE READ"

    def test_unknown_isolation_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--isolation-level", "chaos", "payroll-report"])

    def test_negative_raise_amount(self):
        args = build_parser().parse_args(["raise-department", "--dept-id", "10", "--amount", "-500"])
        assert args.amount == -500

    def test_audit_report_defaults(self):
        args = build_parser().parse_args(["audit-report"])

        assert args.emp_id is None
        assert args.detailed is False
        assert args.limit == 10


@pytest.mark.unit
class TestMain:

    def test_no_command(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
        assert "Available commands" in capsys.readouterr().out

    def test_missing_password(self, clean_env, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["seed"])

        assert exc_info.value.code == 1
        assert "Database password must be provided" in capsys.readouterr().out

    def test_invalid_setting(self, clean_env, capsys):
        clean_env.setenv("DB_POOL_MAX_SIZE", "0")

        with pytest.raises(SystemExit) as exc_info:
            main(["--db-password", "secret", "seed"])

        assert exc_info.value.code == 1
        assert "max_size" in capsys.readouterr().out

    @pytest.mark.parametrize("command", [drop_schema_command, delete_department_command])
    def test_destructive_commands_need_confirmation(self, command, capsys):
        with pytest.raises(SystemExit) as exc_info:
            command(Namespace(yes=False, dept_id=10), pool=None)

        assert exc_info.value.code == 1
        assert "without --yes" in capsys.readouterr().out


@pytest.mark.unit
def test_pool_requires_password(clean_env):
    with pytest.raises(ValueError, match="password must be provided"):
        DatabaseConnectionPool(host="localhost")


@pytest.mark.unit
class TestMainErrors:

    def test_missing_config_file(self, clean_env, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(tmp_path / "missing.yaml"), "--db-password", "secret", "seed"])

        assert exc_info.value.code == 1
        assert "Configuration file not found" in capsys.readouterr().out


@pytest.mark.unit
class TestMetricsPort:

    @pytest.fixture
    def offline(self, monkeypatch):
        """Run main() without a database: the pool never connects"""
        calls = []
        monkeypatch.setattr(DatabaseConnectionPool, "open", lambda self: None)
        monkeypatch.setitem(admin_cli.COMMANDS, "payroll-report", lambda args, pool: calls.append("ran"))
        monkeypatch.setattr(admin_cli, "start_metrics_server", lambda port: calls.append(port))
        return calls

    def test_metrics_server_started(self, clean_env, offline):
        main(["--db-password", "secret", "--metrics-port", "9123", "payroll-report"])
        assert offline == [9123, "ran"]

    def test_metrics_server_not_started_by_default(self, clean_env, offline):
        main(["--db-password", "secret", "payroll-report"])
        assert offline == ["ran"]
