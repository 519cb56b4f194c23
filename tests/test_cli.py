"""Tests for the face store command line."""

import cv2
import pytest

from app.cli import build_parser, main
from face_enroll.face_database import FaceStore, JsonFileKeyValueStore
from tests.fakes import checkerboard, uniform


@pytest.fixture
def database(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = str(tmp_path / "faces.json")
    store = FaceStore(JsonFileKeyValueStore(path))
    store.save_face("Alice", [[1.0, 0.0], [0.8, 0.2]])
    store.save_face("Bob", [[0.0, 1.0]])
    return path


class TestCommands:
    def test_list(self, database, capsys):
        assert main(["--database", database, "list"]) == 0
        out = capsys.readouterr().out
        assert "People in database (2 total)" in out
        assert "Alice: 2 embeddings" in out
        assert "Bob: 1 embedding " in out

    def test_stats_is_default(self, database, capsys):
        assert main(["--database", database]) == 0
        assert "Total Embeddings: 3" in capsys.readouterr().out

    def test_delete(self, database, capsys):
        assert main(["--database", database, "delete", "Bob"]) == 0
        assert main(["--database", database, "delete", "Bob"]) == 1
        assert "not found" in capsys.readouterr().out
        assert [f.name for f in FaceStore(JsonFileKeyValueStore(database)).list_faces()] == ["Alice"]

    def test_clear_requires_confirmation(self, database, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert main(["--database", database, "clear"]) == 1
        assert FaceStore(JsonFileKeyValueStore(database)).count() == 2

        assert main(["--database", database, "clear", "--yes"]) == 0
        assert FaceStore(JsonFileKeyValueStore(database)).count() == 0

    def test_similarity(self, database, capsys):
        assert main(["--database", database, "similarity", "Alice", "Bob"]) == 0
        assert "different people" in capsys.readouterr().out
        assert main(["--database", database, "similarity", "Alice", "Carol"]) == 1

    def test_quality(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        good = str(tmp_path / "good.png")
        dark = str(tmp_path / "dark.png")
        cv2.imwrite(good, checkerboard(size=32))
        cv2.imwrite(dark, uniform(5, size=32))

        assert main(["quality", good]) == 0
        assert main(["quality", good, dark]) == 1
        out = capsys.readouterr().out
        assert "tooDark" in out

    def test_invalid_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "bad.json").write_text('{"recognition": {"threshold": 5}}', encoding="utf-8")
        assert main(["--config", str(tmp_path / "bad.json"), "list"]) == 2

    def test_wrongly_typed_config(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "typed.json").write_text('{"quality": {"min_brightness": "50"}}', encoding="utf-8")
        assert main(["--config", str(tmp_path / "typed.json"), "stats"]) == 2
        assert "quality.min_brightness must be a number" in capsys.readouterr().out

    def test_config_command(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        assert main(["--database", str(tmp_path / "elsewhere.json"), "config"]) == 0
        out = capsys.readouterr().out
        assert "=== Current Configuration ===" in out
        assert "elsewhere.json" in out

    def test_parser_requires_names(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["delete"])
