from pathlib import Path

import pytest

from conftest import run

from mpos.application.container import build_container
from mpos.main import main


def test_build_container_wires_store(tmp_path: Path):
    app = build_container(tmp_path / "store.db")

    run(app.catalog.add_product("Poster", 12.0, 4))

    again = build_container(tmp_path / "store.db")
    assert [p.name for p in run(again.catalog.list_products())] == ["Poster"]


def test_cli_report_seeds_defaults_and_prints_text(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setenv("MPOS_DATA_DIR", str(tmp_path / "data"))

    with pytest.raises(SystemExit) as exc:
        main(["report", "--date", "2024-05-17"])

    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert out.startswith("Reporte de Ventas Diarias\nFecha,2024-05-17\n")
    assert (tmp_path / "data" / "store.db").exists()


def test_cli_health_exit_code(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setenv("MPOS_DATA_DIR", str(tmp_path / "data"))

    with pytest.raises(SystemExit) as exc:
        main(["health"])

    assert exc.value.code == 0
    assert "products=3" in capsys.readouterr().out
