"""
Tests for the binding table, area type mapping, address splitting and labels.
"""

import pytest

from unearthed.core.exceptions import MappingException
from unearthed.core.types import ParsedAddress
from shared.utils.config import settings
from unearthed.mappers.field_mapper import (
    binding_path,
    export_config_dir,
    load_binding,
    map_arealtype,
    parse_combined_address,
)
from unearthed.mappers.labels import get_labels, load_label_tables

CANONICAL = {
    "åker": "Check Box9",
    "beite": "Check Box4",
    "hage": "Check Box11",
    "skog": "Check Box5",
    "fjell": "Check Box6",
    "strand": "Check Box7",
    "vann": "Check Box10",
}


def test_binding_has_every_section(binding):
    assert binding.form_id == "funnskjema_v1"
    assert binding.text_field("finder_name") == "Navn finner"
    assert binding.text_field("farm_holding") == "Funnsted"
    assert binding.checkbox("measured_with_mobile") == "Check Box12"
    assert binding.checkbox("owner_permission").startswith("Grunneier har gitt tillatelse")


def test_unbound_name_raises(binding):
    with pytest.raises(MappingException):
        binding.text_field("favourite_colour")
    with pytest.raises(MappingException):
        binding.checkbox("finder_name")


@pytest.mark.parametrize("value,checkbox", sorted(CANONICAL.items()))
def test_map_arealtype_canonical(binding, value, checkbox):
    assert map_arealtype(value, binding.arealtype_checkboxes) == checkbox
    assert binding.map_arealtype(value.upper()) == checkbox
    assert binding.map_arealtype(f"  {value.title()} ") == checkbox


@pytest.mark.parametrize("spelling", ["Åker", "åker", "aker", " AKER ", "ÅKER"])
def test_map_arealtype_aker_spellings(binding, spelling):
    assert binding.map_arealtype(spelling) == "Check Box9"


@pytest.mark.parametrize("value", ["unknown", "", "   ", "myr", "skogen", "åkerbeite"])
def test_map_arealtype_unknown(binding, value):
    assert binding.map_arealtype(value) is None


def test_map_arealtype_uses_configured_table_by_default():
    assert map_arealtype("Skog") == "Check Box5"


@pytest.mark.parametrize("text,expected", [
    ("Storgata 5, 5073 BERGEN", ParsedAddress("Storgata 5", "5073", "BERGEN")),
    ("Storgata 5", ParsedAddress("Storgata 5", "", "")),
    ("5073", ParsedAddress("", "5073", "")),
    ("X, 5073", ParsedAddress("X", "5073", "")),
    ("Gamle vei 1, Bygda, 9990 BÅTSFJORD", ParsedAddress("Gamle vei 1, Bygda", "9990", "BÅTSFJORD")),
    ("Storgata 5, Bergen", ParsedAddress("Storgata 5", "", "Bergen")),
    ("Storgata 5,", ParsedAddress("Storgata 5", "", "")),
    ("", ParsedAddress()),
    ("   ", ParsedAddress()),
])
def test_parse_combined_address(text, expected):
    assert parse_combined_address(text) == expected


def test_load_binding_requires_sections(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("fields:\n  finder_name: Navn\ncheckboxes: {}\n", encoding="utf-8")

    with pytest.raises(MappingException, match="arealtype_checkboxes"):
        load_binding(path)


def test_load_binding_missing_file(tmp_path):
    with pytest.raises(MappingException):
        load_binding(tmp_path / "nope.yaml")


def test_labels_per_language():
    assert get_labels("en")["photo"] == "Photo"
    assert get_labels("no")["photo"] == "Foto"
    assert get_labels("es")["title"] == "Hallazgo – resumen"


def test_labels_fall_back_to_english():
    assert get_labels("de") == get_labels("en")


def test_config_ships_inside_the_package(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    load_label_tables.cache_clear()

    config_dir = export_config_dir()

    assert config_dir.parts[-3:] == ("unearthed", "config", "export")
    assert binding_path().is_file()
    assert load_binding(binding_path()).arealtype_checkboxes["skog"] == "Check Box5"
    assert get_labels("no")
    load_label_tables.cache_clear()


def test_config_dir_override(tmp_path, monkeypatch):
    (tmp_path / "mappings").mkdir()
    (tmp_path / "mappings" / "funnskjema_v2.yaml").write_text(
        "fields: {finder_name: Finner}\ncheckboxes: {}\narealtype_checkboxes: {Skog: Box A}\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(settings, "EXPORT_CONFIG_DIR", str(tmp_path))

    binding = load_binding(binding_path("funnskjema_v2"))

    assert export_config_dir() == tmp_path
    assert binding.form_id == "funnskjema_v2"
    assert binding.map_arealtype(" SKOG ") == "Box A"
