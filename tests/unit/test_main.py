"""Tests unitaires pour le point d'entrée CLI main.py."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import openpyxl
import pytest

from compta_banque.main import main, parse_args


class TestParseArgs:
    def test_valid_args(self) -> None:
        args = parse_args(["releve.csv"])
        assert args.statement == "releve.csv"
        assert args.output is None
        assert args.config is None
        assert args.initial_balance is None
        assert args.log_level == "INFO"

    def test_missing_args(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args([])
        assert exc_info.value.code == 2

    def test_options(self) -> None:
        args = parse_args(
            ["releve.csv", "--output", "out.xlsx", "--initial-balance", "120.50", "--config", "c.yaml"]
        )
        assert (args.output, args.initial_balance, args.config) == ("out.xlsx", "120.50", "c.yaml")

    def test_log_level_invalid(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["releve.csv", "--log-level", "VERBOSE"])
        assert exc_info.value.code == 2


class TestMain:
    def test_import_and_export(
        self, tmp_path: Path, sample_statement: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        statement = tmp_path / "releve.csv"
        statement.write_text(sample_statement, encoding="utf-8")
        output = tmp_path / "grand_livre.xlsx"

        main([str(statement), "--output", str(output), "--initial-balance", "100"])

        out = capsys.readouterr().out
        assert "Transactions importées : 3" in out
        assert "Solde : 1 472,70 €" in out
        wb = openpyxl.load_workbook(output)
        assert wb.sheetnames == ["Transactions", "Mensuel"]

    def test_config_error_exit_2(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["releve.csv", "--config", str(tmp_path / "absent.yaml")])
        assert exc_info.value.code == 2

    def test_missing_statement_exit_3(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([str(tmp_path / "absent.csv")])
        assert exc_info.value.code == 3

    def test_unexpected_error_exit_1(self, tmp_path: Path, sample_statement: str) -> None:
        statement = tmp_path / "releve.csv"
        statement.write_text(sample_statement, encoding="utf-8")
        with patch("compta_banque.main.build_services", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main([str(statement)])
        assert exc_info.value.code == 1
