import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from backend.src.cli import app
from backend.src.services import config as config_module

runner = CliRunner()


@pytest.fixture
def vault_dir(tmp_path: Path, monkeypatch) -> Path:
    for key in ("VAULT_PATH", "OBSIDIAN_VAULT_PATH", "GEMINI_API_KEY", "GOOGLE_API_KEY", "TASK_FOLDER", "CANVAS_FOLDER"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "load_dotenv", lambda: False)
    vault = tmp_path / "vault"
    vault.mkdir()
    yield vault
    config_module.get_config.cache_clear()


def _invoke(vault: Path, *args: str, input: str | None = None):
    return runner.invoke(app, ["--vault", str(vault), *args], input=input)


def test_canvas_from_stdin(vault_dir: Path) -> None:
    result = _invoke(vault_dir, "canvas", "Sprint Board", "--layout", "taskboard", input="- fix login (high)\n")

    assert result.exit_code == 0, result.output
    assert "Created Canvas/Sprint-Board.canvas" in result.output
    data = json.loads((vault_dir / "Canvas" / "Sprint-Board.canvas").read_text())
    assert len(data["nodes"]) == 5


def test_canvas_from_file_as_json(vault_dir: Path, tmp_path: Path) -> None:
    source = tmp_path / "ideas.txt"
    source.write_text("Product\nDesign\n  - Colours\n")

    result = _invoke(vault_dir, "canvas", "ideas", "-f", str(source), "--folder", "Maps", "--json")

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {
        "path": "Maps/ideas.canvas",
        "created": True,
        "node_count": 3,
        "edge_count": 2,
    }


def test_canvas_generate_without_key_fails(vault_dir: Path) -> None:
    result = _invoke(vault_dir, "canvas", "x", "--generate", input="risk review")

    assert result.exit_code == 1
    assert "Gemini API key" in result.output


def test_task_then_list(vault_dir: Path) -> None:
    created = _invoke(vault_dir, "task", "Ship release", "-p", "high", "-t", "release", "-s", "tag build")
    listed = _invoke(vault_dir, "tasks", "--json")

    assert created.exit_code == 0, created.output
    assert "Task created: Tasks/Ship-release.md" in created.output
    note = (vault_dir / "Tasks" / "Ship-release.md").read_text()
    assert "- [ ] tag build" in note
    assert [(task["title"], task["priority"]) for task in json.loads(listed.output)] == [
        ("Ship release", "high")
    ]


def test_duplicate_task_fails(vault_dir: Path) -> None:
    _invoke(vault_dir, "task", "Once")

    result = _invoke(vault_dir, "task", "Once")

    assert result.exit_code == 1


def test_tasks_table_and_empty(vault_dir: Path) -> None:
    empty = _invoke(vault_dir, "tasks")
    _invoke(vault_dir, "task", "Call Bob")
    table = _invoke(vault_dir, "tasks", "--status", "pending")

    assert "No tasks found" in empty.output
    assert table.exit_code == 0
    assert "Call Bob" in table.output


def test_missing_vault_exits(tmp_path: Path, vault_dir: Path) -> None:
    result = _invoke(tmp_path / "nowhere", "tasks")

    assert result.exit_code == 1
    assert "Vault not found" in result.output
