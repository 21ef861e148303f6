import json

from vega_viz_engine.cli import main
from vega_viz_engine.display_spec import BAR_CHART_TYPE, TIMESERIES_CHART_TYPE


def _write(tmp_path, display):
    path = tmp_path / "display.json"
    path.write_text(json.dumps(display), encoding="utf-8")
    return str(path)


def test_cli_prints_spec(tmp_path, capsys):
    path = _write(tmp_path, {"@type": TIMESERIES_CHART_TYPE, "timeseries": [{"value": "v", "series": "s"}]})
    assert main([path, "--source", "rows"]) == 0
    out, err = capsys.readouterr()
    spec = json.loads(out)
    assert spec["data"][0] == {"name": "rows"}
    assert "background" in spec
    assert "legend column: s" in err


def test_cli_writes_unthemed_file(tmp_path):
    path = _write(tmp_path, {"@type": BAR_CHART_TYPE, "bar": {"value": "count", "label": "service"}})
    out_path = tmp_path / "spec.json"
    assert main([path, "--no-theme", "--out", str(out_path)]) == 0
    spec = json.loads(out_path.read_text(encoding="utf-8"))
    assert spec["data"][0] == {"name": "data"}
    assert "background" not in spec


def test_cli_reports_errors(tmp_path, capsys):
    path = _write(tmp_path, {"@type": BAR_CHART_TYPE, "bar": {"label": "service"}})
    assert main([path]) == 1
    assert main([path, "--no-theme"]) == 1
    _, err = capsys.readouterr()
    assert err.count("[ERR]") == 2


def test_cli_reports_unreadable_input(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json")]) == 1
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    assert main([str(bad)]) == 1
    out, err = capsys.readouterr()
    assert out == ""
    assert err.count("[ERR] cannot read") == 2
