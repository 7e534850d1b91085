"""Architectural tests for the sequencing layers.

All checks use static filesystem/AST inspection to avoid import-time side
effects.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "ordinal"
ROUTES_DIR = PKG_DIR / "routes"
LOGIC_DIR = PKG_DIR / "logic"
MODELS_DIR = PKG_DIR / "models"
MIGRATIONS_DIR = PKG_DIR / "db" / "migrations"


@dataclass
class ParsedModule:
    path: Path
    tree: ast.AST


def parse_module_safe(path: Path) -> Optional[ParsedModule]:
    try:
        code = path.read_text(encoding="utf-8")
    except OSError:
        return None
    try:
        return ParsedModule(path=path, tree=ast.parse(code, filename=str(path)))
    except SyntaxError:
        return None


def imported_roots(path: Path) -> set[str]:
    parsed = parse_module_safe(path)
    if parsed is None:
        pytest.fail(f"Failed to parse {path}")
    roots: set[str] = set()
    for node in ast.walk(parsed.tree):
        if isinstance(node, ast.Import):
            roots.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            roots.add(node.module)
    return roots


def _uses(roots: set[str], prefix: str) -> bool:
    return any(r == prefix or r.startswith(prefix + ".") for r in roots)


@pytest.mark.parametrize("module", ["sequencer.py", "sequence_store.py", "errors.py", "page_history.py"])
def test_pure_logic_has_no_web_or_database_imports(module: str) -> None:
    roots = imported_roots(LOGIC_DIR / module)
    for forbidden in ("sqlalchemy", "fastapi", "starlette", "ordinal.db"):
        assert not _uses(roots, forbidden), f"{module} imports {forbidden}"


def test_value_models_depend_only_on_pydantic() -> None:
    roots = imported_roots(MODELS_DIR / "sequence.py")
    third_party = {r.split(".")[0] for r in roots} - {"__future__", "re", "enum", "typing"}
    assert third_party == {"pydantic"}


def test_route_handlers_do_not_touch_persistence() -> None:
    for path in sorted(ROUTES_DIR.glob("*.py")):
        roots = imported_roots(path)
        assert not _uses(roots, "sqlalchemy"), f"{path.name} imports sqlalchemy"
        assert not _uses(roots, "ordinal.db"), f"{path.name} imports ordinal.db"


def test_sequencer_never_builds_sql_text() -> None:
    parsed = parse_module_safe(LOGIC_DIR / "sequencer.py")
    assert parsed is not None
    strings = [n.value for n in ast.walk(parsed.tree) if isinstance(n, ast.Constant) and isinstance(n.value, str)]
    assert not any("UPDATE " in s.upper() and " SET " in s.upper() for s in strings)


@pytest.mark.parametrize("dialect", ["sqlite", "postgresql"])
def test_each_dialect_ships_item_migration(dialect: str) -> None:
    files = sorted((MIGRATIONS_DIR / dialect).glob("*.sql"))
    assert files, f"no migrations for {dialect}"
    sql = "\n".join(f.read_text(encoding="utf-8") for f in files).lower()
    assert "create table if not exists sequence_item" in sql
    assert "position" in sql and "list_key" in sql
