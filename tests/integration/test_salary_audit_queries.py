"""
Integration tests for salary audit log queries and summaries.
"""
import pytest

from payroll_audit.database.audit import (
    get_salary_audit_summary,
    query_recent_salary_audit,
)
from payroll_audit.database.repository import EmployeeRepository

ALICE, FRANK = 1, 6


def _server_clock(pool):
    return pool.execute_query("SELECT clock_timestamp() AS now")[0]["now"]


@pytest.fixture
def audited_db(seeded_db):
    """
    Seeded database with three audited changes:
    Frank 120000 -> 130000, Alice 60000 -> 55000, Frank 130000 -> 135000
    """
    employees = EmployeeRepository(seeded_db)
    employees.update_salary(FRANK, 130000)
    employees.update_salary(ALICE, 55000)
    employees.update_salary(FRANK, 135000)
    return seeded_db


@pytest.mark.integration
class TestSalaryAuditSummary:

    def test_summary_across_employees(self, audited_db):
        summary = get_salary_audit_summary(audited_db)

        assert summary["total_changes"] == 3
        assert summary["employees_affected"] == 2
        assert summary["raises"] == 2
        assert summary["cuts"] == 1
        assert summary["total_raised"] == 15000
        assert summary["total_cut"] == 5000
        assert summary["first_change"] <= summary["last_change"]

    def test_summary_for_one_employee(self, audited_db):
        summary = get_salary_audit_summary(audited_db, employee_id=FRANK)

        assert summary["total_changes"] == 2
        assert summary["employees_affected"] == 1
        assert summary["raises"] == 2
        assert summary["cuts"] == 0
        assert summary["total_raised"] == 15000
        assert summary["total_cut"] == 0

    def test_summary_for_cut_only(self, audited_db):
        summary = get_salary_audit_summary(audited_db, employee_id=ALICE)

        assert (summary["raises"], summary["cuts"]) == (0, 1)
        assert (summary["total_raised"], summary["total_cut"]) == (0, 5000)

    def test_empty_summary(self, seeded_db):
        summary = get_salary_audit_summary(seeded_db)

        assert summary["total_changes"] == 0
        assert summary["total_raised"] == 0
        assert summary["first_change"] is None
        assert summary["last_change"] is None


@pytest.mark.integration
class TestRecentSalaryAudit:

    def test_newest_first(self, audited_db):
        entries = query_recent_salary_audit(audited_db)

        assert [(e.employee_id, e.new_salary) for e in entries] == [
            (FRANK, 135000),
            (ALICE, 55000),
            (FRANK, 130000),
        ]

    def test_limit(self, audited_db):
        assert len(query_recent_salary_audit(audited_db, limit=2)) == 2

    def test_since_cutoff(self, seeded_db):
        employees = EmployeeRepository(seeded_db)
        employees.update_salary(FRANK, 130000)
        cutoff = _server_clock(seeded_db)
        employees.update_salary(ALICE, 55000)

        entries = query_recent_salary_audit(seeded_db, since=cutoff)

        assert [e.employee_id for e in entries] == [ALICE]
        assert len(query_recent_salary_audit(seeded_db)) == 2

    def test_employee_filter(self, audited_db):
        entries = query_recent_salary_audit(audited_db, employee_id=ALICE)

        assert [(e.old_salary, e.new_salary) for e in entries] == [(60000, 55000)]

    def test_since_and_employee_filter(self, audited_db):
        cutoff = _server_clock(audited_db)
        EmployeeRepository(audited_db).update_salary(ALICE, 58000)

        entries = query_recent_salary_audit(audited_db, since=cutoff, employee_id=ALICE)

        assert [e.new_salary for e in entries] == [58000]
