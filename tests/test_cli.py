"""
Tests for the command line entry point.
"""

import json

import pytest
import yaml

from shared.utils.config import settings
from unearthed.cli import main


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOCAL_STORAGE_DIR", str(tmp_path / "store"))


def test_inspect(template_path, capsys):
    assert main(["inspect", str(template_path)]) == 0

    info = json.loads(capsys.readouterr().out)
    assert "Navn finner" in {f["name"] for f in info["fields"]}


def test_inspect_missing_file(tmp_path):
    assert main(["inspect", str(tmp_path / "nope.pdf")]) == 1


def test_export_and_remember(tmp_path, template_path, png_bytes, capsys):
    photo = tmp_path / "spenne.png"
    photo.write_bytes(png_bytes)
    record = tmp_path / "find.yaml"
    record.write_text(yaml.safe_dump({
        "finder": {"name": "Kari Nordmann", "email": "kari@example.no"},
        "object": {"name": "Spenne"},
        # No parsable position, so no lookups are attempted
        "location": "ved steingarden",
    }, allow_unicode=True), encoding="utf-8")

    code = main([
        "export", str(record),
        "--photo", str(photo),
        "--lang", "en",
        "--template", str(template_path),
        "--output-dir", str(tmp_path / "out"),
    ])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["success"] is True
    assert result["page_count"] == 2
    assert (tmp_path / "out" / "funnskjema-utfylt.pdf").exists()

    assert main(["remember"]) == 0
    remembered = json.loads(capsys.readouterr().out)
    assert remembered["finder"]["name"] == "Kari Nordmann"
    assert remembered["lang"] == "en"


def test_export_failure_exit_code(tmp_path, capsys):
    record = tmp_path / "find.json"
    record.write_text(json.dumps({"finder": {"name": "Kari"}}), encoding="utf-8")

    code = main(["export", str(record), "--template", str(tmp_path / "gone.pdf")])

    assert code == 1
    assert "Could not create the filled PDF" in capsys.readouterr().err


def test_export_unreadable_record(tmp_path):
    assert main(["export", str(tmp_path / "missing.yaml")]) == 1
