"""
Test cases for the command-line interface.
"""

import json

from typer.testing import CliRunner

from bsonbridge.cli import app
from bsonbridge.core.reader import decode
from bsonbridge.core.types import document
from bsonbridge.core.writer import encode

runner = CliRunner()


class TestConvertCommand:
    """Test the convert command."""

    def test_converts_both_directions(self, tmp_path):
        json_path = tmp_path / "people.json"
        json_path.write_text('{"name": "Ada"}', encoding="utf-8")
        bson_path = tmp_path / "counts.bson"
        bson_path.write_bytes(encode(document(n=3)))

        result = runner.invoke(app, ["convert", str(json_path), str(bson_path)])

        assert result.exit_code == 0
        assert "people.bson" in result.output
        assert decode((tmp_path / "people.bson").read_bytes()) == document(name="Ada")
        assert json.loads((tmp_path / "counts.json").read_text(encoding="utf-8")) == {"n": 3}

    def test_failure_does_not_stop_other_files(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"a": }', encoding="utf-8")
        good = tmp_path / "good.json"
        good.write_text('{"a": 1}', encoding="utf-8")

        result = runner.invoke(app, ["convert", str(bad), str(good)])

        assert result.exit_code == 1
        assert (tmp_path / "good.bson").exists()
        assert not (tmp_path / "bad.bson").exists()
        assert "bad.json" in result.output

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("{}")

        result = runner.invoke(app, ["convert", str(path)])

        assert result.exit_code == 1
        assert "Unsupported file type" in result.output

    def test_output_dir_and_canonical(self, tmp_path):
        source = tmp_path / "data.bson"
        source.write_bytes(encode(document(n=3)))
        out_dir = tmp_path / "out"

        result = runner.invoke(
            app,
            ["convert", str(source), "-o", str(out_dir), "--canonical", "--indent", "0"],
        )

        assert result.exit_code == 0
        written = json.loads((out_dir / "data.json").read_text(encoding="utf-8"))
        assert written == {"n": {"$numberInt": "3"}}

    def test_strict_rejects_duplicate_keys(self, tmp_path):
        path = tmp_path / "dup.json"
        path.write_text('{"a": 1, "a": 2}', encoding="utf-8")

        assert runner.invoke(app, ["convert", "--strict", str(path)]).exit_code == 1
        assert runner.invoke(app, ["convert", str(path)]).exit_code == 0
        assert decode((tmp_path / "dup.bson").read_bytes()) == document(a=2)


class TestValidateCommand:
    """Test the validate command."""

    def test_valid_and_invalid(self, tmp_path):
        good = tmp_path / "good.json"
        good.write_text('{"id": {"$oid": "507f1f77bcf86cd799439011"}}', encoding="utf-8")
        bad = tmp_path / "bad.bson"
        bad.write_bytes(b"\x05\x00\x00")

        result = runner.invoke(app, ["validate", str(good), str(bad)])

        assert result.exit_code == 1
        assert "good.json: valid JSON" in result.output
        assert "bad.bson" in result.output
        assert sorted(p.name for p in tmp_path.iterdir()) == ["bad.bson", "good.json"]

    def test_all_valid(self, tmp_path):
        path = tmp_path / "empty.bson"
        path.write_bytes(b"\x05\x00\x00\x00\x00")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 0
        assert "valid BSON" in result.output
