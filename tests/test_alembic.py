"""
test_alembic.py — Verify Alembic migration setup and structure.

Reads migration files as source so no database or Alembic runtime
context is needed. Checks the baseline revision and that it creates
every table the ORM models declare.

Called by: pytest
Depends on: alembic/, salestrack.models
"""

import ast
import re
from pathlib import Path

from salestrack.models import Base

ROOT = Path(__file__).parent.parent
MIGRATION_DIR = ROOT / "alembic" / "versions"


def _baseline_source() -> str:
    files = sorted(MIGRATION_DIR.glob("*.py"))
    assert len(files) >= 1, "No migration files found"
    return files[0].read_text()


def _module_assignments(source: str) -> dict:
    values = {}
    for node in ast.parse(source).body:
        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name) and node.value is not None:
            values[node.target.id] = ast.literal_eval(node.value)
        elif isinstance(node, ast.Assign) and isinstance(node.targets[0], ast.Name):
            values[node.targets[0].id] = ast.literal_eval(node.value)
    return values


def test_initial_migration_has_required_attributes():
    source = _baseline_source()
    values = _module_assignments(source)
    assert values["revision"] == "001_initial"
    assert values["down_revision"] is None, "Initial migration should have no parent"
    functions = {n.name for n in ast.parse(source).body if isinstance(n, ast.FunctionDef)}
    assert {"upgrade", "downgrade"} <= functions


def test_upgrade_creates_every_model_table():
    created = set(re.findall(r'op\.create_table\(\s*"(\w+)"', _baseline_source()))
    assert created == set(Base.metadata.tables)


def test_downgrade_drops_every_created_table():
    source = _baseline_source()
    created = set(re.findall(r'op\.create_table\(\s*"(\w+)"', source))
    dropped = set(re.findall(r'op\.drop_table\("(\w+)"\)', source))
    assert dropped == created


def test_env_py_imports_models():
    """env.py must import Base so autogenerate sees all tables."""
    content = (ROOT / "alembic" / "env.py").read_text()
    assert "from salestrack.models import Base" in content


def test_env_py_url_override_and_batch_mode():
    """-x db_url wins over settings; SQLite gets batch mode."""
    content = (ROOT / "alembic" / "env.py").read_text()
    assert 'get_x_argument(as_dictionary=True).get("db_url")' in content
    assert 'render_as_batch=url.startswith("sqlite")' in content
