"""Tests for the command-line entry point."""

import json
from pathlib import Path

import pytest

from adaptly.__main__ import main
from adaptly.storage import SQLiteStorage, StateStore


@pytest.fixture
def schema_file(tmp_path, schema_document):
    path = tmp_path / "adaptly.json"
    path.write_text(json.dumps(schema_document))
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "state.db"


class TestValidateSchema:
    @pytest.mark.unit
    def test_valid(self, schema_file, capsys):
        assert main(["validate-schema", str(schema_file)]) == 0
        out = capsys.readouterr().out
        assert "4 element types" in out
        assert "MetricCard" in out

    @pytest.mark.unit
    def test_bundled_schema(self, capsys):
        bundled = Path(__file__).resolve().parents[1] / "adaptly.json"
        assert main(["validate-schema", str(bundled)]) == 0
        assert "WeatherWidget" in capsys.readouterr().out

    @pytest.mark.unit
    def test_invalid(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"version": "1.0.0", "components": {}}')
        assert main(["validate-schema", str(path)]) == 1

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        assert main(["validate-schema", str(tmp_path / "nope.json")]) == 1


class TestStorageCommands:
    @pytest.mark.unit
    def test_show_empty(self, db_path):
        assert main(["show", "--storage", str(db_path)]) == 1

    @pytest.mark.unit
    def test_show_and_reset(self, db_path, sample_state, capsys):
        store = StateStore(SQLiteStorage(db_path))
        store.save("board", "2.0.0", sample_state)
        store.close()

        args = ["--storage", str(db_path), "--key", "board", "--version", "2.0.0"]
        assert main(["show", *args]) == 0
        record = json.loads(capsys.readouterr().out)
        assert [e["id"] for e in record["elements"]] == ["revenue", "users"]

        assert main(["reset", *args]) == 0
        assert main(["show", *args]) == 1


class TestGenerate:
    @pytest.mark.unit
    def test_scripted_provider(self, schema_file, db_path, capsys):
        code = main(
            [
                "generate",
                "grid of metrics",
                "--schema",
                str(schema_file),
                "--provider",
                "scripted",
                "--storage",
                str(db_path),
            ]
        )
        assert code == 0
        record = json.loads(capsys.readouterr().out)
        assert record["elements"] == []

    @pytest.mark.unit
    def test_missing_schema(self, tmp_path):
        assert main(["generate", "anything", "--schema", str(tmp_path / "none.json")]) == 1

    @pytest.mark.unit
    def test_keyword_fallback_without_credentials(self, schema_file, db_path, monkeypatch, capsys):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        code = main(
            [
                "generate",
                "switch to flex layout",
                "--schema",
                str(schema_file),
                "--provider",
                "anthropic",
                "--storage",
                str(db_path),
            ]
        )
        assert code == 0
        record = json.loads(capsys.readouterr().out.split("\nRationale:")[0])
        assert record["arrangementMode"] == "flow"


class TestMisc:
    @pytest.mark.unit
    def test_no_command(self):
        assert main([]) == 1

    @pytest.mark.unit
    def test_env_hides_secrets(self, monkeypatch, capsys):
        monkeypatch.setenv("GOOGLE_API_KEY", "very-secret-value")
        assert main(["env", "--category", "llm"]) == 0
        out = capsys.readouterr().out
        assert "very-secret-value" not in out
        assert "GOOGLE_API_KEY" in out
        assert "google" in out.split("Providers with credentials:")[1]

    @pytest.mark.unit
    def test_models(self, capsys):
        assert main(["models"]) == 0
        assert "gemini-2.0-flash" in capsys.readouterr().out
