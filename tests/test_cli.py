"""
Tests for the faf CLI (fafcore.cli.main) using click's CliRunner.
"""

import json

import pytest
from click.testing import CliRunner

from fafcore.cli.main import cli
from fafcore.client import Faf
from fafcore.core.config import FafConfig


@pytest.fixture
def runner():
    return CliRunner()


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestScoreCommand:

    def test_console_output(self, runner, faf_file):
        result = runner.invoke(cli, ["score", str(faf_file)])
        assert result.exit_code == 0, result.output
        assert "FAF SCORE" in result.output
        assert "11%" in result.output
        assert "Checksum" in result.output

    def test_json_output(self, runner, faf_file):
        result = runner.invoke(cli, ["score", str(faf_file), "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["score"] == 11
        assert data["total"] == 9
        assert data["trace"] is None

    def test_type_option(self, runner, faf_file):
        result = runner.invoke(cli, ["score", str(faf_file), "--type", "nextjs", "-f", "json"])
        assert json.loads(result.output)["total"] == 21

    def test_trace_option(self, runner, faf_file):
        result = runner.invoke(cli, ["score", str(faf_file), "--trace"])
        assert result.exit_code == 0, result.output
        assert "finalize" in result.output
        data = json.loads(runner.invoke(cli, ["score", str(faf_file), "--trace", "-f", "json"]).output)
        assert len(data["trace"]["passes"]) == 6

    def test_compact_output(self, runner, faf_file):
        result = runner.invoke(cli, ["score", str(faf_file), "-f", "compact"])
        assert result.output.startswith("11% 1/9 cli ")

    def test_default_file(self, runner, faf_file, monkeypatch):
        monkeypatch.chdir(faf_file.parent)
        result = runner.invoke(cli, ["score", "-f", "json"])
        assert json.loads(result.output)["score"] == 11

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["score", str(tmp_path / "absent.faf")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_yaml(self, runner, tmp_path):
        path = _write(tmp_path, "bad.faf", "project: [unclosed\n")
        result = runner.invoke(cli, ["score", str(path)])
        assert result.exit_code == 1

    def test_non_mapping_document_still_scores(self, runner, tmp_path):
        path = _write(tmp_path, "list.faf", "- one\n- two\n")
        result = runner.invoke(cli, ["score", str(path), "-f", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["score"] == 0
        assert data["diagnostics"][0]["severity"] == "error"

    def test_strict_flag_ignores_embedded_score(self, runner, tmp_path):
        path = _write(
            tmp_path, "embedded.faf",
            "ai_score: 95%\nai_scoring_system: '2025-08-30'\nhuman_context:\n  who: Team\n",
        )
        trusted = json.loads(runner.invoke(cli, ["score", str(path), "-t", "cli", "-f", "json"]).output)
        strict = json.loads(runner.invoke(cli, ["--strict", "score", str(path), "-t", "cli", "-f", "json"]).output)
        assert trusted["score"] == 95
        assert strict["score"] == 11

    def test_invalid_env_config(self, runner, faf_file, monkeypatch):
        monkeypatch.setenv("FAF_CHECKSUM_LENGTH", "4")
        result = runner.invoke(cli, ["score", str(faf_file)])
        assert result.exit_code == 1
        assert "checksum_length" in result.output

    def test_injected_client(self, runner, faf_file):
        client = Faf(config=FafConfig(checksum_length=32))
        result = runner.invoke(cli, ["score", str(faf_file), "-f", "json"], obj={"client": client})
        assert len(json.loads(result.output)["checksum"]) == 32

    def test_strict_flag_does_not_modify_injected_config(self, runner, faf_file):
        config = FafConfig(checksum_length=32)
        client = Faf(config=config)
        result = runner.invoke(cli, ["--strict", "score", str(faf_file), "-f", "json"], obj={"client": client})
        assert result.exit_code == 0
        assert len(json.loads(result.output)["checksum"]) == 32
        assert client.config.trusted_scoring_versions == frozenset({"2025-08-30"})
        assert config.trusted_scoring_versions == frozenset({"2025-08-30"})


class TestVerifyCommand:

    def _checksum(self, runner, path):
        return json.loads(runner.invoke(cli, ["score", str(path), "-f", "json"]).output)["checksum"]

    def test_match(self, runner, faf_file):
        checksum = self._checksum(runner, faf_file)
        result = runner.invoke(cli, ["verify", str(faf_file), checksum])
        assert result.exit_code == 0, result.output
        assert "verified" in result.output

    def test_mismatch(self, runner, faf_file):
        checksum = self._checksum(runner, faf_file)
        faf_file.write_text(faf_file.read_text(encoding="utf-8") + "  why: Speed\n", encoding="utf-8")
        result = runner.invoke(cli, ["verify", str(faf_file), checksum])
        assert result.exit_code == 1
        assert "mismatch" in result.output

    def test_type_must_match(self, runner, faf_file):
        checksum = self._checksum(runner, faf_file)
        assert runner.invoke(cli, ["verify", str(faf_file), checksum, "--type", "cli"]).exit_code == 0
        assert runner.invoke(cli, ["verify", str(faf_file), checksum, "--type", "svelte"]).exit_code == 1

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["verify", str(tmp_path / "absent.faf"), "abc"])
        assert result.exit_code == 1


class TestTaxonomyCommands:

    def test_slots(self, runner):
        result = runner.invoke(cli, ["slots", "cli-ts"])
        assert result.exit_code == 0
        assert "cli — 9 slots" in result.output
        assert "resolved from 'cli-ts'" in result.output
        assert "human_context.how" in result.output
        assert "stack.frontend" not in result.output

    def test_slots_unknown_type(self, runner):
        result = runner.invoke(cli, ["slots", "mainframe"])
        assert "generic — 12 slots" in result.output

    def test_types(self, runner):
        result = runner.invoke(cli, ["types"])
        assert result.exit_code == 0
        lines = {line.split()[0]: line for line in result.output.splitlines() if line.strip()}
        assert " 21" in lines["nextjs"]
        assert "next" in lines["nextjs"]
        assert " 9" in lines["cli"]
