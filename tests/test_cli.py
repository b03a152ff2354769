"""Tests for the command-line interface."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from budget_categorizer.cli import get_log_level, main, read_transactions_csv
from budget_categorizer.models.state import EngineState
from budget_categorizer.persistence.snapshot import serialize_state
from budget_categorizer.processing.locks import lock
from budget_categorizer.processing.rules import set_rule

CATEGORIES_YAML = """
categories:
  - id: food
    name: Food
  - id: groceries
    name: Groceries
    parent: food
  - id: transport
    name: Transport
    allow_subcategories: false
"""

TRANSACTIONS_CSV = """date,amount,text,from_account,to_account,type
2024-01-01,-100.00,KIWI,Brukskonto,,Varekjøp
2024-01-02,-50.00,KIWI,Brukskonto,,Varekjøp
2024-01-03,-30.00,REMA,Brukskonto,,Varekjøp
not-a-date,-1.00,BROKEN,Brukskonto,,Varekjøp
"""


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Config directory with a small category tree."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "categories.yaml").write_text(CATEGORIES_YAML, encoding="utf-8")
    (directory / "settings.yaml").write_text("logging:\n  level: INFO\n", encoding="utf-8")
    return directory


@pytest.fixture
def transactions_csv(tmp_path: Path) -> Path:
    path = tmp_path / "export.csv"
    path.write_text(TRANSACTIONS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def state_file(tmp_path: Path, now: datetime) -> Path:
    """Snapshot with a KIWI rule and a lock on a non-existent transaction."""
    engine = EngineState(
        rules=set_rule({}, "kiwi", "groceries", now=now),
        locks=lock({}, "0123456789abcdef", "transport", now=now),
    )
    path = tmp_path / "state.json"
    path.write_text(json.dumps(serialize_state(engine, saved_at=now)), encoding="utf-8")
    return path


class TestGetLogLevel:
    """Tests for get_log_level."""

    @pytest.mark.parametrize(
        "verbosity,expected",
        [(0, "WARNING"), (1, "INFO"), (2, "DEBUG"), (5, "DEBUG")],
    )
    def test_levels(self, verbosity: int, expected: str) -> None:
        """Test mapping of -v counts to levels."""
        assert get_log_level(verbosity) == expected


class TestReadTransactionsCsv:
    """Tests for read_transactions_csv."""

    def test_skips_unparseable_rows(self, transactions_csv: Path) -> None:
        """Test that bad rows are skipped and good rows kept in order."""
        txns = read_transactions_csv(transactions_csv)
        assert [t.text for t in txns] == ["KIWI", "KIWI", "REMA"]
        assert txns[0].transaction_type == "Varekjøp"


class TestValidateConfig:
    """Tests for the validate-config command."""

    def test_valid(self, config_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a valid configuration directory."""
        assert main(["--config-dir", str(config_dir), "validate-config"]) == 0
        assert "Configuration is valid." in capsys.readouterr().out

    def test_invalid_categories(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that structural errors fail validation."""
        (tmp_path / "categories.yaml").write_text(
            "categories:\n  - id: a\n    parent: missing\n", encoding="utf-8"
        )
        assert main(["--config-dir", str(tmp_path), "validate-config"]) == 1
        assert "Errors:" in capsys.readouterr().out


class TestCheckSnapshot:
    """Tests for the check-snapshot command."""

    def test_valid(self, state_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a valid snapshot prints its counts."""
        assert main(["check-snapshot", str(state_file)]) == 0
        out = capsys.readouterr().out
        assert "1 rules" in out
        assert "1 locks" in out

    def test_unsupported_version(self, tmp_path: Path) -> None:
        """Test that an unknown version fails the check."""
        path = tmp_path / "state.json"
        path.write_text(
            json.dumps(
                {"version": 2, "rules": [], "locks": [], "metadata": {"saved_at": "2024-01-01"}}
            ),
            encoding="utf-8",
        )
        assert main(["check-snapshot", str(path)]) == 1

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test that a corrupt file fails the check."""
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["check-snapshot", str(path)]) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file fails the check."""
        assert main(["check-snapshot", str(tmp_path / "missing.json")]) == 1


class TestClassify:
    """Tests for the classify command."""

    def test_classify_and_write_state(
        self,
        config_dir: Path,
        transactions_csv: Path,
        state_file: Path,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test classifying a CSV with stored rules and saving the state."""
        out_state = tmp_path / "out" / "state.json"

        code = main(
            [
                "--config-dir", str(config_dir),
                "classify",
                "--transactions", str(transactions_csv),
                "--state", str(state_file),
                "--write-state", str(out_state),
            ]
        )

        assert code == 0
        out = capsys.readouterr().out
        assert "Total transactions: 3" in out
        assert "Categorized: 2" in out

        written = json.loads(out_state.read_text(encoding="utf-8"))
        assert written["version"] == 1
        assert [key for key, _ in written["rules"]] == ["kiwi"]
        assert written["metadata"]["transaction_count"] == 3

    def test_fix_invalid(
        self,
        config_dir: Path,
        transactions_csv: Path,
        tmp_path: Path,
        now: datetime,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that --fix-invalid drops rules pointing to parent categories."""
        state_path = tmp_path / "stale.json"
        engine = EngineState(rules=set_rule({}, "kiwi", "food", now=now))
        state_path.write_text(json.dumps(serialize_state(engine, saved_at=now)), encoding="utf-8")
        out_state = tmp_path / "fixed.json"

        code = main(
            [
                "--config-dir", str(config_dir),
                "classify",
                "-t", str(transactions_csv),
                "--state", str(state_path),
                "--fix-invalid",
                "--write-state", str(out_state),
            ]
        )

        assert code == 0
        assert "Repaired invalid assignments: 2" in capsys.readouterr().out
        assert json.loads(out_state.read_text(encoding="utf-8"))["rules"] == []

    def test_missing_transactions_file(self, config_dir: Path, tmp_path: Path) -> None:
        """Test that a missing CSV is an error."""
        code = main(
            [
                "--config-dir", str(config_dir),
                "classify",
                "-t", str(tmp_path / "missing.csv"),
                "--state", str(tmp_path / "state.json"),
            ]
        )
        assert code == 1

    def test_corrupt_state_file(
        self, config_dir: Path, transactions_csv: Path, tmp_path: Path
    ) -> None:
        """Test that an invalid state file aborts classification."""
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"version": 1}), encoding="utf-8")
        code = main(
            [
                "--config-dir", str(config_dir),
                "classify",
                "-t", str(transactions_csv),
                "--state", str(bad),
            ]
        )
        assert code == 1


class TestRulesCommands:
    """Tests for the rules and export-rules commands."""

    def test_list_rules(
        self, config_dir: Path, state_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test listing rules from a snapshot."""
        assert main(["--config-dir", str(config_dir), "rules", "--state", str(state_file)]) == 0
        assert "1 rules, 1 locks" in capsys.readouterr().out

    def test_list_rules_missing_state(self, config_dir: Path, tmp_path: Path) -> None:
        """Test that a missing snapshot is an error."""
        code = main(
            ["--config-dir", str(config_dir), "rules", "--state", str(tmp_path / "none.json")]
        )
        assert code == 1

    def test_export_rules(self, config_dir: Path, state_file: Path, tmp_path: Path) -> None:
        """Test exporting a rule template with category names."""
        output = tmp_path / "template.json"
        code = main(
            [
                "--config-dir", str(config_dir),
                "export-rules",
                "--state", str(state_file),
                "-o", str(output),
            ]
        )

        assert code == 0
        template = json.loads(output.read_text(encoding="utf-8"))
        assert template["rules"][0]["category_name"] == "Groceries"


class TestMain:
    """Tests for argument handling in main."""

    def test_no_command(self) -> None:
        """Test that running without a command prints help and fails."""
        assert main([]) == 1
