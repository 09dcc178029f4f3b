"""
Admin CLI for the payroll database.

Usage:
    python -m payroll_audit.cli.admin_cli init-schema
    python -m payroll_audit.cli.admin_cli drop-schema --yes
    python -m payroll_audit.cli.admin_cli seed
    python -m payroll_audit.cli.admin_cli set-salary --emp-id <id> --salary <amount>
    python -m payroll_audit.cli.admin_cli raise-department --dept-id <id> --amount <delta>
    python -m payroll_audit.cli.admin_cli preview-raise --dept-id <id> --amount <delta>
    python -m payroll_audit.cli.admin_cli delete-department --dept-id <id> --yes
    python -m payroll_audit.cli.admin_cli salary-history --emp-id <id> [--limit N]
    python -m payroll_audit.cli.admin_cli audit-report [--emp-id <id>] [--detailed]
    python -m payroll_audit.cli.admin_cli payroll-report
    python -m payroll_audit.cli.admin_cli search-articles --terms <text>

Any command accepts --metrics-port <port> to expose Prometheus metrics.

Connection settings come from --config (YAML), DB_* environment
variables and the --db-* options, in increasing precedence.
"""

import argparse
import sys
from datetime import datetime

from payroll_audit.core.config import ISOLATION_LEVELS, load_settings
from payroll_audit.database.audit import (
    get_salary_audit_summary,
    query_recent_salary_audit,
    query_salary_audit_by_employee,
)
from payroll_audit.database.connection import DatabaseConnectionPool
from payroll_audit.database.reports import PayrollReports
from payroll_audit.database.repository import (
    ArticleRepository,
    DepartmentRepository,
    EmployeeRepository,
)
from payroll_audit.database.schema_mgmt import SchemaManager
from payroll_audit.database.seed import seed_sample_data
from payroll_audit.database.transactions import preview_department_raise
from payroll_audit.observability.logger import configure_logging, get_logger
from payroll_audit.observability.metrics import start_metrics_server

logger = get_logger(__name__)


def format_timestamp(ts: datetime | str | None) -> str:
    """Format timestamp for display."""
    if isinstance(ts, str):
        return ts
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else "N/A"


def format_salary(amount) -> str:
    return "NULL" if amount is None else f"{amount:,}"


def build_pool(args) -> DatabaseConnectionPool:
    """
    Create (but do not open) a connection pool from CLI arguments.

    Args:
        args: Parsed command line arguments
    """
    settings = load_settings(
        config_path=args.config,
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
        isolation_level=args.isolation_level,
    )
    configure_logging(level=settings.logging.level, format_type=settings.logging.format)
    return DatabaseConnectionPool(**settings.database.pool_kwargs())


def init_schema_command(args, pool: DatabaseConnectionPool) -> None:
    manager = SchemaManager(pool)
    manager.create_schema()
    print("\nSchema installed. Tables:")
    for table in manager.list_tables():
        print(f"  - {table}")
    state = "installed" if manager.trigger_installed() else "MISSING"
    print(f"\nSalary audit trigger: {state}\n")


def drop_schema_command(args, pool: DatabaseConnectionPool) -> None:
    if not args.yes:
        print("\nRefusing to drop the schema without --yes")
        sys.exit(1)
    SchemaManager(pool).drop_schema()
    print("\nSchema dropped.\n")


def seed_command(args, pool: DatabaseConnectionPool) -> None:
    counts = seed_sample_data(pool)
    print("\nSample data inserted:")
    for table, count in counts.items():
        print(f"  {table:<15} {count:>5}")
    print()


def set_salary_command(args, pool: DatabaseConnectionPool) -> None:
    change = EmployeeRepository(pool).update_salary(args.emp_id, args.salary)
    if change.changed:
        print(
            f"\nEmployee {change.emp_id}: {format_salary(change.old_salary)} -> "
            f"{format_salary(change.new_salary)} (audit entry recorded)\n"
        )
    else:
        print(f"\nEmployee {change.emp_id}: salary unchanged, no audit entry\n")


def raise_department_command(args, pool: DatabaseConnectionPool) -> None:
    changes = EmployeeRepository(pool).adjust_department_salaries(args.dept_id, args.amount)
    if not changes:
        print(f"\nNo salaried employees in department {args.dept_id}\n")
        return

    print(f"\n{'Employee':<10} {'Old':>12} {'New':>12}")
    print(f"{'-' * 36}")
    for change in changes:
        print(
            f"{change.emp_id:<10} {format_salary(change.old_salary):>12} "
            f"{format_salary(change.new_salary):>12}"
        )
    print()


def preview_raise_command(args, pool: DatabaseConnectionPool) -> None:
    preview = preview_department_raise(
        pool, args.dept_id, args.amount, isolation_level=args.isolation_level
    )

    print(f"\n{'=' * 60}")
    print(f"PREVIEW (rolled back) - isolation: {preview['isolation_level']}")
    print(f"{'=' * 60}\n")
    print(f"{'Name':<20} {'Uncommitted salary':>20}")
    print(f"{'-' * 41}")
    for row in preview["uncommitted_salaries"]:
        print(f"{row['name']:<20} {format_salary(row['salary']):>20}")
    print(f"\nAudit entries visible inside the transaction: {preview['audit_entries_seen']}")
    print("All changes were rolled back.\n")


def delete_department_command(args, pool: DatabaseConnectionPool) -> None:
    if not args.yes:
        print("\nRefusing to delete a department without --yes (its employees are deleted too)")
        sys.exit(1)
    removed = DepartmentRepository(pool).delete(args.dept_id)
    print(f"\nDeleted department {args.dept_id} and {removed} employee(s)\n")


def salary_history_command(args, pool: DatabaseConnectionPool) -> None:
    entries = query_salary_audit_by_employee(pool, args.emp_id, limit=args.limit)

    if not entries:
        print(f"\nNo salary changes recorded for employee {args.emp_id}\n")
        return

    print(f"\n{'=' * 70}")
    print(f"SALARY HISTORY FOR EMPLOYEE: {args.emp_id}")
    print(f"{'=' * 70}\n")
    print(f"{'Changed at':<20} {'Old':>12} {'New':>12} {'Delta':>12}")
    print(f"{'-' * 70}")

    for entry in reversed(entries):  # Show oldest first
        delta = "-" if entry.delta is None else f"{entry.delta:+,}"
        print(
            f"{format_timestamp(entry.change_date):<20} {format_salary(entry.old_salary):>12} "
            f"{format_salary(entry.new_salary):>12} {delta:>12}"
        )
    print(f"\n{'=' * 70}\n")


def audit_report_command(args, pool: DatabaseConnectionPool) -> None:
    summary = get_salary_audit_summary(pool, employee_id=args.emp_id)

    print(f"\n{'=' * 60}")
    print("SALARY AUDIT REPORT")
    if args.emp_id is not None:
        print(f"Employee: {args.emp_id}")
    print(f"{'=' * 60}\n")

    print(f"  Total changes:      {summary['total_changes']}")
    print(f"  Employees affected: {summary['employees_affected']}")
    print(f"  Raises:             {summary['raises']} ({format_salary(summary['total_raised'])})")
    print(f"  Cuts:               {summary['cuts']} ({format_salary(summary['total_cut'])})")
    print(f"  First change:       {format_timestamp(summary['first_change'])}")
    print(f"  Last change:        {format_timestamp(summary['last_change'])}")

    if args.detailed:
        print("\nMost Recent Changes:")
        print(f"{'-' * 60}")
        for entry in query_recent_salary_audit(pool, limit=args.limit, employee_id=args.emp_id):
            print(
                f"  #{entry.audit_id:<6} employee {entry.employee_id:<6} "
                f"{format_salary(entry.old_salary)} -> {format_salary(entry.new_salary)} "
                f"at {format_timestamp(entry.change_date)}"
            )
    print()


def payroll_report_command(args, pool: DatabaseConnectionPool) -> None:
    reports = PayrollReports(pool)
    summary = reports.payroll_summary()

    print(f"\n{'=' * 60}")
    print("PAYROLL REPORT")
    print(f"{'=' * 60}\n")
    print(f"  Employees:      {summary.total_employees}")
    print(f"  Total payroll:  {format_salary(summary.total_payroll)}")
    print(f"  Lowest salary:  {format_salary(summary.lowest_salary)}")
    print(f"  Highest salary: {format_salary(summary.highest_salary)}")
    average = "NULL" if summary.average_salary is None else f"{summary.average_salary:,.2f}"
    print(f"  Average salary: {average}\n")

    print(f"{'Department':<20} {'Headcount':>10} {'Total':>14}")
    print(f"{'-' * 46}")
    for dept in reports.department_payroll():
        print(f"{dept.dept_name:<20} {dept.headcount:>10} {format_salary(dept.total_salary):>14}")
    print()


def search_articles_command(args, pool: DatabaseConnectionPool) -> None:
    results = ArticleRepository(pool).search(args.terms, limit=args.limit)
    if not results:
        print(f"\nNo articles match '{args.terms}'\n")
        return

    print()
    for article in results:
        print(f"[{article.score:.4f}] {article.title}")
        print(f"    {article.body}")
    print()


COMMANDS = {
    "init-schema": init_schema_command,
    "drop-schema": drop_schema_command,
    "seed": seed_command,
    "set-salary": set_salary_command,
    "raise-department": raise_department_command,
    "preview-raise": preview_raise_command,
    "delete-department": delete_department_command,
    "salary-history": salary_history_command,
    "audit-report": audit_report_command,
    "payroll-report": payroll_report_command,
    "search-articles": search_articles_command,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all admin commands."""
    parser = argparse.ArgumentParser(
        description="Admin CLI for the payroll database",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Global database connection options (None means "not given")
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--db-host", help="Database host (default: localhost)")
    parser.add_argument("--db-port", type=int, help="Database port (default: 5432)")
    parser.add_argument("--db-name", help="Database name (default: payroll)")
    parser.add_argument("--db-user", help="Database user (default: payroll)")
    parser.add_argument("--db-password", help="Database password")
    parser.add_argument(
        "--isolation-level",
        type=str.upper,
        choices=list(ISOLATION_LEVELS),
        help="Transaction isolation level (default: READ COMMITTED)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        help="Expose Prometheus metrics on this port while the command runs"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-schema", help="Install tables, trigger, functions and views")

    drop_parser = subparsers.add_parser("drop-schema", help="Drop all payroll objects and data")
    drop_parser.add_argument("--yes", action="store_true", help="Confirm the drop")

    subparsers.add_parser("seed", help="Insert sample departments, employees and articles")

    salary_parser = subparsers.add_parser("set-salary", help="Set one employee's salary")
    salary_parser.add_argument("--emp-id", type=int, required=True, help="Employee ID")
    salary_parser.add_argument("--salary", type=int, required=True, help="New salary")

    raise_parser = subparsers.add_parser(
        "raise-department",
        help="Add an amount to every salary in a department"
    )
    raise_parser.add_argument("--dept-id", type=int, required=True, help="Department ID")
    raise_parser.add_argument(
        "--amount",
        type=int,
        required=True,
        help="Amount to add (negative for a cut)"
    )

    preview_parser = subparsers.add_parser(
        "preview-raise",
        help="Show a department raise inside a transaction, then roll it back"
    )
    preview_parser.add_argument("--dept-id", type=int, required=True, help="Department ID")
    preview_parser.add_argument("--amount", type=int, required=True, help="Amount to add")

    delete_parser = subparsers.add_parser(
        "delete-department",
        help="Delete a department and, by cascade, its employees"
    )
    delete_parser.add_argument("--dept-id", type=int, required=True, help="Department ID")
    delete_parser.add_argument("--yes", action="store_true", help="Confirm the delete")

    history_parser = subparsers.add_parser(
        "salary-history",
        help="Show the salary audit trail of an employee"
    )
    history_parser.add_argument("--emp-id", type=int, required=True, help="Employee ID")
    history_parser.add_argument(
        "--limit",
        type=int,
        default=100,
        help="Maximum number of entries to display (default: 100)"
    )

    report_parser = subparsers.add_parser(
        "audit-report",
        help="Summarize the salary audit log"
    )
    report_parser.add_argument("--emp-id", type=int, help="Filter by employee ID (optional)")
    report_parser.add_argument(
        "--detailed",
        action="store_true",
        help="Show the most recent changes"
    )
    report_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of recent changes in detailed view (default: 10)"
    )

    subparsers.add_parser("payroll-report", help="Show payroll aggregates per department")

    search_parser = subparsers.add_parser("search-articles", help="Full-text search of articles")
    search_parser.add_argument("--terms", required=True, help="Search terms")
    search_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of results (default: 10)"
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for admin CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    handler = COMMANDS[args.command]

    try:
        pool = build_pool(args)
    except (ValueError, OSError) as e:
        print(f"\nError: {e}")
        sys.exit(1)

    try:
        if args.metrics_port:
            start_metrics_server(args.metrics_port)
        pool.open()
        handler(args, pool)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)

    except Exception as e:
        logger.error(f"Error running {args.command}: {e}", exc_info=True)
        print(f"\nError: {e}")
        sys.exit(1)

    finally:
        pool.close()


if __name__ == "__main__":
    main()
