from pathlib import Path

import allure

from issue_agent.repository import SQLiteRepository

pytestmark = [
    allure.epic("Issue Store"),
    allure.feature("Schema Migrations"),
]


def test_alembic_schema_is_initialized_to_head(tmp_path: Path) -> None:
    repository = SQLiteRepository(tmp_path / "migrations.db")
    repository.init_schema()

    row = repository._connection.execute(
        "SELECT version_num FROM alembic_version LIMIT 1"
    ).fetchone()
    assert row is not None
    assert str(row["version_num"]) == "20261018_0002"

    tables = repository._connection.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name IN ('issues', 'repositories', 'scan_history')
        ORDER BY name
        """
    ).fetchall()
    assert [str(row["name"]) for row in tables] == ["issues", "repositories", "scan_history"]
    repository.close()


def test_init_schema_is_repeatable(tmp_path: Path) -> None:
    db_path = tmp_path / "repeat.db"
    for _ in range(2):
        repository = SQLiteRepository(db_path)
        repository.init_schema()
        repository.close()

    repository = SQLiteRepository(db_path)
    count = repository._connection.execute("SELECT COUNT(*) AS n FROM alembic_version").fetchone()
    assert count["n"] == 1
    repository.close()
