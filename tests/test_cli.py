# tests/test_cli.py

import csv

import pytest

from moonphase.cli import main
from moonphase.reference.dataset import year_path


ONE_CANDIDATE = [
    "--offset-min", "0", "--offset-max", "0", "--offset-step", "6",
    "--syn-min", "29.5306", "--syn-max", "29.5306", "--syn-step", "0.0002",
]


def test_year_lists_full_moons(capsys):
    assert main(["year", "2000", "--phase", "2"]) == 0
    out = capsys.readouterr().out
    assert "Moon phases 2000 (UTC):" in out
    assert "21/01/2000" in out
    assert "Full Moon" in out
    assert "First Quarter" not in out

def test_month(capsys):
    assert main(["month", "2000", "1"]) == 0
    out = capsys.readouterr().out
    assert "Moon phases 01/2000 (UTC):" in out
    assert "06/01/2000  18:00  New Moon" in out

def test_month_out_of_range():
    with pytest.raises(SystemExit):
        main(["month", "2000", "13"])

def test_year_out_of_range(capsys):
    assert main(["year", "1"]) == 1
    assert "error:" in capsys.readouterr().err

def test_full_moons_csv(tmp_path, capsys):
    out_csv = tmp_path / "full_2025.csv"
    assert main(["full-moons", "2025", "--csv", str(out_csv)]) == 0
    assert "CSV written" in capsys.readouterr().out
    with open(out_csv, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["DateTimeUtc", "Phase"]
    assert 12 <= len(rows) - 1 <= 13
    assert all(r[1] == "2" for r in rows[1:])
    assert rows[1][0].startswith("2025-01-")

def test_now_at_fixed_instant(capsys):
    assert main(["now", "--at", "2000-01-21T12:00:00"]) == 0
    out = capsys.readouterr().out
    assert "21/01/2000" in out
    assert "[###]  Full Moon (Phase 2)" in out

def test_generate_then_calibrate(tmp_path, capsys):
    assert main(["generate", "2025", "2025", str(tmp_path)]) == 0
    assert year_path(tmp_path, 2025).exists()
    capsys.readouterr()

    assert main(["calibrate", str(tmp_path), "2025", "2025", *ONE_CANDIDATE]) == 0
    out = capsys.readouterr().out
    assert "Candidates     : 1" in out
    assert "Best parameters:" in out
    assert "reference_new_moon : 2000-01-06T18:14:00" in out
    assert "synodic_month_days : 29.5306" in out
    assert "avg abs error (d)  : 0.00000" in out

def test_calibrate_without_reference_data(tmp_path, capsys):
    assert main(["calibrate", str(tmp_path), "2025", "2025", *ONE_CANDIDATE]) == 1
    assert "No reference data found" in capsys.readouterr().out

def test_residuals_command(tmp_path, capsys):
    assert main(["generate", "2024", "2025", str(tmp_path), "--layout", "static"]) == 0
    capsys.readouterr()
    assert main(["residuals", str(tmp_path), "2024", "2025", "--layout", "static"]) == 0
    out = capsys.readouterr().out
    assert "Mismatched years: 0" in out
    assert "Mean |error| (d): 0.00000" in out
