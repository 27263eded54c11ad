# tests/test_run_local.py
from backend.run_local import main
import pathlib

SAMPLE = pathlib.Path(__file__).parent / "sample.csv"


def test_main_prints_summary(capsys):
    assert main(str(SAMPLE)) == 0
    out = capsys.readouterr().out
    assert "Parsed 3 readings" in out
    assert "total energy: 0.010 kWh" in out
    assert "compressor cycles: 2" in out


def test_main_reports_load_error(tmp_path, capsys):
    assert main(str(tmp_path / "missing.csv")) == 1
    assert "Could not load" in capsys.readouterr().err
