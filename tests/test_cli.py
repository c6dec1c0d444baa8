from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

from typer.testing import CliRunner

from pdf_to_image.cli import app

runner = CliRunner()


def write_config(tmp_path: Path, fake_pdftoppm: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(
        f"""
[runtime]
output_dir = "{(tmp_path / 'output').as_posix()}"
log_dir = "{(tmp_path / 'logs').as_posix()}"
engine_path = "{fake_pdftoppm.as_posix()}"

[storage]
local_dir = "{(tmp_path / 'objects').as_posix()}"
""",
        encoding="utf-8",
    )
    return path


def test_convert_command(tmp_path, fake_pdftoppm, sample_pdf):
    config = write_config(tmp_path, fake_pdftoppm)
    out = tmp_path / "images"
    result = runner.invoke(
        app,
        ["convert", str(sample_pdf), "-o", str(out), "-p", "2-3", "-f", "png", "--config", str(config)],
    )
    assert result.exit_code == 0, result.output
    assert "Images created: 2" in result.output
    assert "Pages converted: 2, 3" in result.output
    assert sorted(path.name for path in out.iterdir()) == ["document_page_002.png", "document_page_003.png"]


def test_convert_uses_configured_output_dir(tmp_path, fake_pdftoppm, sample_pdf):
    config = write_config(tmp_path, fake_pdftoppm)
    result = runner.invoke(app, ["convert", str(sample_pdf), "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert len(list((tmp_path / "output").glob("document_page_*.jpg"))) == 5


def test_convert_failure_exits_non_zero(tmp_path, fake_pdftoppm, sample_pdf):
    config = write_config(tmp_path, fake_pdftoppm)
    result = runner.invoke(app, ["convert", str(sample_pdf), "-p", "1,x", "--config", str(config)])
    assert result.exit_code == 1
    assert "INVALID_RANGE" in result.output


def test_unknown_engine(tmp_path, fake_pdftoppm, sample_pdf):
    config = write_config(tmp_path, fake_pdftoppm)
    result = runner.invoke(app, ["convert", str(sample_pdf), "--engine", "ghostscript", "--config", str(config)])
    assert result.exit_code == 1
    assert "UNKNOWN_ENGINE" in result.output


def test_show_config(tmp_path, fake_pdftoppm):
    config = write_config(tmp_path, fake_pdftoppm)
    result = runner.invoke(app, ["show-config", "--config", str(config)])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["runtime"]["engine_path"] == fake_pdftoppm.as_posix()
    assert payload["storage"]["backend"] == "local"


def test_clean_removes_stale_objects(tmp_path, fake_pdftoppm):
    config = write_config(tmp_path, fake_pdftoppm)
    stale = tmp_path / "objects" / "output" / "conversion-1" / "doc_page_001.jpg"
    fresh = tmp_path / "objects" / "output" / "conversion-2" / "doc_page_001.jpg"
    for path in (stale, fresh):
        path.parent.mkdir(parents=True)
        path.write_bytes(b"image")
    old = (datetime.now(timezone.utc) - timedelta(hours=3)).timestamp()
    os.utime(stale, (old, old))

    result = runner.invoke(app, ["clean", "--older-than", "60", "--config", str(config)])
    assert result.exit_code == 0, result.output
    assert "Removed 1" in result.output
    assert not stale.exists()
    assert fresh.exists()


def test_new_run_id():
    result = runner.invoke(app, ["new-run-id"])
    assert result.exit_code == 0
    assert result.output.startswith("run-")
