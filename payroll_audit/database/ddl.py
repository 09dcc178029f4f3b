"""
DDL for the payroll schema.

Statements are ordered so that CREATE_STATEMENTS can be executed top to
bottom and DROP_STATEMENTS undo them. Every CREATE is idempotent.
"""

AUDIT_TRIGGER_NAME = "before_salary_update"
IMMUTABLE_AUDIT_TRIGGER_NAME = "salary_audit_immutable"

CREATE_DEPARTMENTS = """
    CREATE TABLE IF NOT EXISTS departments (
        dept_id INT PRIMARY KEY,
        dept_name VARCHAR(50) NOT NULL UNIQUE
    )
"""

# ON DELETE CASCADE removes a department's employees with it;
# ON UPDATE CASCADE follows a renumbered dept_id.
CREATE_EMPLOYEES = """
    CREATE TABLE IF NOT EXISTS employees (
        emp_id INT GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        salary INT CONSTRAINT chk_salary_non_negative CHECK (salary >= 0),
        dept_id INT,
        CONSTRAINT fk_dept
            FOREIGN KEY (dept_id)
            REFERENCES departments (dept_id)
            ON DELETE CASCADE
            ON UPDATE CASCADE
    )
"""

CREATE_EMPLOYEES_DEPT_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_employees_dept_id ON employees (dept_id)
"""

# No foreign key to employees: audit history outlives the employee row.
CREATE_SALARY_AUDIT = """
    CREATE TABLE IF NOT EXISTS salary_audit (
        audit_id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
        employee_id INT NOT NULL,
        old_salary INT,
        new_salary INT,
        change_date TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

CREATE_SALARY_AUDIT_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_salary_audit_employee
        ON salary_audit (employee_id, change_date)
"""

CREATE_ARTICLES = """
    CREATE TABLE IF NOT EXISTS articles (
        id INT GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
        title VARCHAR(255),
        body TEXT,
        body_tsv TSVECTOR
            GENERATED ALWAYS AS (to_tsvector('english', coalesce(body, ''))) STORED
    )
"""

CREATE_ARTICLES_FULLTEXT_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_fulltext_body ON articles USING GIN (body_tsv)
"""

# Runs BEFORE the row is modified and inside the updating transaction, so
# the audit row commits or rolls back together with the salary change.
CREATE_LOG_SALARY_CHANGE_FUNCTION = """
    CREATE OR REPLACE FUNCTION log_salary_change() RETURNS trigger
    LANGUAGE plpgsql AS $$
    BEGIN
        IF OLD.salary IS DISTINCT FROM NEW.salary THEN
            INSERT INTO salary_audit (employee_id, old_salary, new_salary, change_date)
            VALUES (OLD.emp_id, OLD.salary, NEW.salary, now());
        END IF;
        RETURN NEW;
    END;
    $$
"""

DROP_SALARY_TRIGGER = f"DROP TRIGGER IF EXISTS {AUDIT_TRIGGER_NAME} ON employees"

CREATE_SALARY_TRIGGER = f"""
    CREATE TRIGGER {AUDIT_TRIGGER_NAME}
    BEFORE UPDATE OF salary ON employees
    FOR EACH ROW
    EXECUTE FUNCTION log_salary_change()
"""

CREATE_REJECT_AUDIT_CHANGE_FUNCTION = """
    CREATE OR REPLACE FUNCTION reject_salary_audit_change() RETURNS trigger
    LANGUAGE plpgsql AS $$
    BEGIN
        RAISE EXCEPTION 'salary_audit entries are immutable (% of audit_id %)',
            TG_OP, OLD.audit_id;
    END;
    $$
"""

DROP_IMMUTABLE_AUDIT_TRIGGER = (
    f"DROP TRIGGER IF EXISTS {IMMUTABLE_AUDIT_TRIGGER_NAME} ON salary_audit"
)

CREATE_IMMUTABLE_AUDIT_TRIGGER = f"""
    CREATE TRIGGER {IMMUTABLE_AUDIT_TRIGGER_NAME}
    BEFORE UPDATE OR DELETE ON salary_audit
    FOR EACH ROW
    EXECUTE FUNCTION reject_salary_audit_change()
"""

CREATE_CALCULATE_BONUS_FUNCTION = """
    CREATE OR REPLACE FUNCTION calculate_bonus(emp_salary INT) RETURNS NUMERIC(10, 2)
    LANGUAGE sql IMMUTABLE AS $$
        SELECT round(emp_salary * 0.10, 2)
    $$
"""

CREATE_EMPLOYEE_BY_ID_FUNCTION = """
    CREATE OR REPLACE FUNCTION employee_by_id(p_emp_id INT) RETURNS SETOF employees
    LANGUAGE sql STABLE AS $$
        SELECT * FROM employees WHERE emp_id = p_emp_id
    $$
"""

CREATE_DEPARTMENT_PAYROLL_VIEW = """
    CREATE OR REPLACE VIEW department_payroll AS
    SELECT
        d.dept_id,
        d.dept_name,
        COUNT(e.emp_id) AS headcount,
        SUM(e.salary) AS total_salary,
        AVG(e.salary) AS average_salary
    FROM departments d
    LEFT JOIN employees e ON e.dept_id = d.dept_id
    GROUP BY d.dept_id, d.dept_name
"""

CREATE_STATEMENTS = [
    CREATE_DEPARTMENTS,
    CREATE_EMPLOYEES,
    CREATE_EMPLOYEES_DEPT_INDEX,
    CREATE_SALARY_AUDIT,
    CREATE_SALARY_AUDIT_INDEX,
    CREATE_ARTICLES,
    CREATE_ARTICLES_FULLTEXT_INDEX,
    CREATE_LOG_SALARY_CHANGE_FUNCTION,
    DROP_SALARY_TRIGGER,
    CREATE_SALARY_TRIGGER,
    CREATE_REJECT_AUDIT_CHANGE_FUNCTION,
    DROP_IMMUTABLE_AUDIT_TRIGGER,
    CREATE_IMMUTABLE_AUDIT_TRIGGER,
    CREATE_CALCULATE_BONUS_FUNCTION,
    CREATE_EMPLOYEE_BY_ID_FUNCTION,
    CREATE_DEPARTMENT_PAYROLL_VIEW,
]

DROP_STATEMENTS = [
    "DROP VIEW IF EXISTS department_payroll",
    "DROP FUNCTION IF EXISTS employee_by_id(INT)",
    "DROP TABLE IF EXISTS articles, salary_audit, employees, departments CASCADE",
    "DROP FUNCTION IF EXISTS log_salary_change()",
    "DROP FUNCTION IF EXISTS reject_salary_audit_change()",
    "DROP FUNCTION IF EXISTS calculate_bonus(INT)",
]

# Tables in dependency order (children first), used when emptying the schema
TABLES = ["salary_audit", "articles", "employees", "departments"]
