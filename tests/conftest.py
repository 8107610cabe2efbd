"""
Shared fixtures: a fillable template built with reportlab from the binding
table, Pillow-generated photos and a mocked Geonorge client.
"""

import sys
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import httpx
import pytest
from PIL import Image
from reportlab.pdfgen import canvas

from unearthed.data_providers.geonorge_provider import GeonorgeProvider
from unearthed.mappers.field_mapper import FieldBinding, get_binding
from unearthed.storage.local_store import LocalStore


def build_template(binding: FieldBinding, omit: Iterable[str] = ()) -> bytes:
    """One-page AcroForm with a text field or checkbox per bound name."""
    omit = set(omit)
    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=(595.28, 841.89))
    c.setFont("Helvetica", 10)
    c.drawString(40, 810, "Funnskjema")

    text_names = [name for name in binding.fields.values() if name not in omit]
    box_names = list(binding.checkboxes.values())
    box_names += sorted(set(binding.arealtype_checkboxes.values()))
    box_names = [name for name in box_names if name not in omit]

    y = 780
    for name in text_names:
        c.acroForm.textfield(name=name, x=220, y=y, width=320, height=16, fontSize=9, borderStyle="inset")
        y -= 24
    x = 40
    for name in box_names:
        c.acroForm.checkbox(name=name, x=x, y=40, size=12, buttonStyle="check", checked=False)
        x += 30

    c.showPage()
    c.save()
    return buffer.getvalue()


def make_image(width: int = 400, height: int = 300, fmt: str = "PNG", color=(150, 90, 40)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def binding() -> FieldBinding:
    return get_binding()


@pytest.fixture
def template_bytes(binding) -> bytes:
    return build_template(binding)


@pytest.fixture
def template_path(tmp_path, template_bytes) -> Path:
    path = tmp_path / "Funnskjema-unlocked.pdf"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def png_bytes() -> bytes:
    return make_image()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image(fmt="JPEG")


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(str(tmp_path / "store"))


ADDRESS_RESPONSE = {
    "metadata": {"totaltAntallTreff": 1},
    "adresser": [
        {
            "adressetekst": "Storgata 5",
            "postnummer": "5073",
            "poststed": "BERGEN",
            "kommunenavn": "BERGEN",
            "kommunenummer": "4601",
            "gardsnummer": 12,
            "bruksnummer": 3,
            "meterDistanseTilPunkt": 41.2,
            "representasjonspunkt": {"epsg": "EPSG:4258", "lat": 60.3913, "lon": 5.3221},
        }
    ],
}

MUNICIPALITY_RESPONSE = {
    "fylkesnavn": "Vestland",
    "fylkesnummer": "46",
    "kommunenavn": "Bergen",
    "kommunenummer": "4601",
}


def geonorge_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/punktsok"):
        return httpx.Response(200, json=ADDRESS_RESPONSE)
    if request.url.path.endswith("/punkt"):
        return httpx.Response(200, json=MUNICIPALITY_RESPONSE)
    return httpx.Response(404)


@pytest.fixture
def make_provider() -> Callable[..., GeonorgeProvider]:
    """Provider whose HTTP client answers from ``handler`` instead of the network."""

    def factory(handler=geonorge_handler) -> GeonorgeProvider:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return GeonorgeProvider(client=client)

    return factory


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image


@pytest.fixture
def template_factory(binding) -> Callable[..., bytes]:
    """Template builder; ``omit`` drops fields to simulate a revised form."""

    def factory(omit: Iterable[str] = ()) -> bytes:
        return build_template(binding, omit)

    return factory
