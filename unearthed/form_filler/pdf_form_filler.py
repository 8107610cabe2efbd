"""
PDF Form Filler - AcroForm field population for the find report template.

Fills the interactive form fields of the official template using pypdf.
The template is maintained externally and its field names drift between
revisions, so every single write is fault-tolerant: a missing or renamed
field is logged and reported as skipped, and the export carries on.
"""

from datetime import date
from io import BytesIO
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging

from pypdf import PdfReader, PdfWriter
from pypdf.generic import BooleanObject, DictionaryObject, NameObject

from shared.utils.helpers import truncate_text
from unearthed.core.exceptions import (
    FieldNotFoundException,
    FieldTypeMismatchException,
    MappingException,
    TemplateLoadException,
)
from unearthed.core.types import (
    FieldWriteResult,
    FindRecord,
    LocationContext,
    PopulateReport,
)
from unearthed.geo.coordinates import DATUM_LABELS, UTM32
from unearthed.mappers.field_mapper import CHECKBOX, TEXT, FieldBinding, parse_combined_address

logger = logging.getLogger(__name__)

OFF = "/Off"
DEFAULT_ON_STATE = "/Yes"
WRITTEN = "written"
SKIPPED = "skipped"


def load_template(data: bytes, source: str = "template") -> PdfWriter:
    """
    Parse template bytes into a writable document.

    Raises:
        TemplateLoadException: If the bytes are not a PDF with an AcroForm
    """
    try:
        reader = PdfReader(BytesIO(data))
        if "/AcroForm" not in reader.trailer["/Root"]:
            raise TemplateLoadException(f"PDF is not a fillable form (no AcroForm): {source}")
        writer = PdfWriter(clone_from=reader)
    except TemplateLoadException:
        raise
    except Exception as e:
        raise TemplateLoadException(f"Could not parse {source} as PDF: {e}") from e

    logger.info(f"Loaded template {source}: {len(writer.pages)} page(s)")
    return writer


class PdfForm:
    """
    Mutable view of a loaded template's AcroForm.

    Text writes go through pypdf (which also regenerates the text
    appearance); checkbox writes set /V and /AS on every widget directly.
    """

    def __init__(self, writer: PdfWriter):
        self.writer = writer
        self._fields: Dict[str, Dict[str, Any]] = dict(writer.get_fields() or {})
        logger.info(f"Found {len(self._fields)} form fields in template")

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def field_type(self, name: str) -> str:
        if name not in self._fields:
            raise FieldNotFoundException(name)
        return str(self._fields[name].get("/FT", ""))

    def _require(self, name: str, expected: str) -> None:
        actual = self.field_type(name)
        if actual != expected:
            raise FieldTypeMismatchException(name, expected, actual)

    def set_text(self, name: str, value: str) -> None:
        """
        Set a text field on every page it appears on.

        Raises:
            FieldNotFoundException: No such field
            FieldTypeMismatchException: Field is not a text field
        """
        self._require(name, "/Tx")
        for page in self.writer.pages:
            if "/Annots" not in page:
                continue
            self.writer.update_page_form_field_values(page, {name: value}, auto_regenerate=False)

    def set_checkbox(self, name: str, checked: bool, force: bool = False) -> None:
        """
        Check or uncheck a checkbox.

        Args:
            name: Checkbox field name
            checked: Target state
            force: Write /Off first, then the target state, on every widget
                so viewers cannot keep a cached appearance

        Raises:
            FieldNotFoundException: No such field, or it has no widget
            FieldTypeMismatchException: Field is not a button
        """
        self._require(name, "/Btn")
        widgets = list(self._widgets(name))
        if not widgets:
            raise FieldNotFoundException(name)

        for field_obj, widget in widgets:
            state = NameObject(self._on_state(widget) if checked else OFF)
            if force:
                widget[NameObject("/AS")] = NameObject(OFF)
                field_obj[NameObject("/V")] = NameObject(OFF)
            widget[NameObject("/AS")] = state
            field_obj[NameObject("/V")] = state

    def finalize(self) -> None:
        """Ask viewers to rebuild field appearances from the raw values."""
        acro_form = self.writer._root_object["/AcroForm"].get_object()
        acro_form[NameObject("/NeedAppearances")] = BooleanObject(True)

    def _widgets(self, name: str) -> Iterator[Tuple[DictionaryObject, DictionaryObject]]:
        """(field dictionary, widget annotation) pairs for a field name."""
        for page in self.writer.pages:
            annots = page.get("/Annots")
            if annots is None:
                continue
            for ref in annots.get_object():
                annot = ref.get_object()
                if annot.get("/Subtype") != "/Widget":
                    continue
                if "/T" in annot:
                    field_obj = annot
                elif "/Parent" in annot:
                    field_obj = annot["/Parent"].get_object()
                else:
                    continue
                if self._qualified_name(field_obj) == name:
                    yield field_obj, annot

    @staticmethod
    def _qualified_name(field_obj: DictionaryObject) -> str:
        """Dotted name from the root field down, as get_fields() reports it."""
        parts = []
        node: Optional[DictionaryObject] = field_obj
        while node is not None:
            if "/T" in node:
                parts.append(str(node["/T"]))
            parent = node.get("/Parent")
            node = parent.get_object() if parent is not None else None
        return ".".join(reversed(parts))

    @staticmethod
    def _on_state(widget: DictionaryObject) -> str:
        appearances = widget.get("/AP")
        if appearances is not None:
            normal = appearances.get_object().get("/N")
            if normal is not None:
                for state in normal.get_object().keys():
                    if state != OFF:
                        return str(state)
        return DEFAULT_ON_STATE


def write_if_present(
    form: PdfForm,
    binding: FieldBinding,
    logical_name: str,
    value: Any,
    kind: str = TEXT,
    field_name: Optional[str] = None,
    force: bool = False,
) -> FieldWriteResult:
    """
    Write one bound value, never raising.

    Args:
        form: Loaded form
        binding: Binding table used to resolve ``logical_name``
        logical_name: Name in the binding table
        value: Text for text fields, bool for checkboxes
        kind: TEXT or CHECKBOX
        field_name: Explicit template field name (area type checkboxes)
        force: Uncheck-then-check for checkboxes

    Returns:
        FieldWriteResult with status "written" or "skipped"
    """
    name = field_name or ""
    try:
        if not name:
            name = binding.checkbox(logical_name) if kind == CHECKBOX else binding.text_field(logical_name)
        if kind == CHECKBOX:
            value = bool(value)
            form.set_checkbox(name, value, force=force)
        else:
            value = "" if value is None else str(value)
            form.set_text(name, value)
    except (MappingException, FieldNotFoundException, FieldTypeMismatchException) as e:
        logger.warning(f"✗ Skipped '{logical_name}': {e}")
        return FieldWriteResult(logical_name, name, SKIPPED, value, str(e))
    except Exception as e:
        logger.warning(f"✗ Failed to fill '{logical_name}' ({name}): {type(e).__name__}: {e}")
        return FieldWriteResult(logical_name, name, SKIPPED, value, f"{type(e).__name__}: {e}")

    logger.debug(f"✓ Filled: {name} = {truncate_text(str(value))}")
    return FieldWriteResult(logical_name, name, WRITTEN, value)


class FormPopulator:
    """
    Write a find record into the loaded template.

    Example:
        >>> populator = FormPopulator(get_binding())
        >>> report = populator.populate(form, record, location, get_labels("no"))
        >>> print(f"{len(report.written)} written, {len(report.skipped)} skipped")
    """

    def __init__(self, binding: FieldBinding):
        self.binding = binding

    def populate(
        self,
        form: PdfForm,
        record: FindRecord,
        location: LocationContext,
        labels: Dict[str, str],
        today: Optional[date] = None,
    ) -> PopulateReport:
        """
        Fill every bound field from the record and the resolved location.

        Args:
            form: Loaded template form
            record: Find record snapshot
            location: Resolution stage output (position, lookups)
            labels: Localized labels for the notes aggregate
            today: Find date (defaults to the system clock)

        Returns:
            PopulateReport with one entry per attempted write
        """
        report = PopulateReport()
        today = today or date.today()

        def text(logical_name: str, value: Any) -> None:
            report.add(write_if_present(form, self.binding, logical_name, value))

        def check(logical_name: str, checked: bool, field_name: Optional[str] = None) -> None:
            report.add(write_if_present(
                form, self.binding, logical_name, checked,
                kind=CHECKBOX, field_name=field_name, force=True,
            ))

        def skip(logical_name: str, reason: str) -> None:
            report.add(FieldWriteResult(
                logical_name, self.binding.fields.get(logical_name, ""), SKIPPED, None, reason
            ))

        finder = record.finder
        text("finder_name", finder.name)
        finder_address = parse_combined_address(finder.address)
        text("finder_address", finder_address.street)
        text("finder_postal_code", finder_address.postal_code)
        text("finder_place", finder_address.place)
        text("finder_phone", finder.phone)
        text("finder_email", finder.email)

        owner = record.owner
        text("owner_name", owner.name)
        if location.address is not None:
            text("owner_address", location.address.street_text)
            text("owner_postal_code", location.address.postal_code)
            text("owner_place", location.address.postal_place)
        else:
            owner_address = parse_combined_address(owner.address)
            text("owner_address", owner_address.street)
            text("owner_postal_code", owner_address.postal_code)
            text("owner_place", owner_address.place)
        text("owner_phone", owner.phone)
        text("owner_email", owner.email)

        # No owner name means no permission claim
        check("owner_permission", bool(owner.name.strip()))

        text("object_name", record.object.name)
        if record.depth:
            text("depth", f"{record.depth} cm")
        else:
            skip("depth", "no value")

        self._populate_gps(location, text, skip)
        self._populate_cadastre(record, location, text, skip)

        text("find_date", today.isoformat())
        text("other_info", self._other_info(record, labels))

        check("measured_with_mobile", True)

        checkbox = self.binding.map_arealtype(record.arealtype)
        if checkbox:
            check("arealtype", True, field_name=checkbox)
        elif record.arealtype:
            logger.info(f"Area type '{record.arealtype}' has no checkbox, leaving all unchecked")

        logger.info(f"Filled {len(report.written)}/{len(report.results)} fields")
        return report

    @staticmethod
    def _populate_gps(location: LocationContext, text, skip) -> None:
        position = location.position
        if position is None:
            for logical_name in ("gps_north", "gps_east", "datum"):
                skip(logical_name, "no location")
            return

        if location.effective_system == UTM32 and position.has_utm32:
            text("gps_north", str(round(position.northing)))
            text("gps_east", str(round(position.easting)))
            text("datum", DATUM_LABELS[UTM32])
        else:
            text("gps_north", f"{position.lat:.6f}")
            text("gps_east", f"{position.lon:.6f}")
            text("datum", DATUM_LABELS["wgs84"])

    @staticmethod
    def _populate_cadastre(record: FindRecord, location: LocationContext, text, skip) -> None:
        owner = record.owner
        address = location.address
        municipality = location.municipality

        county = municipality.county_name if municipality else ""
        if county:
            text("county", county)
        else:
            skip("county", "no municipality lookup")

        kommune = (
            owner.kommune
            or (municipality.municipality_name if municipality else "")
            or (address.municipality_name if address else "")
        )
        if kommune:
            text("municipality", kommune)
        else:
            skip("municipality", "no value")

        gnr = owner.gnr or (address.farm_number if address else "")
        bnr = owner.bnr or (address.holding_number if address else "")
        if gnr and bnr:
            text("farm_holding", f"{gnr}/{bnr}")
        elif gnr or bnr:
            text("farm_holding", gnr or bnr)
        else:
            skip("farm_holding", "no gnr/bnr")

    @staticmethod
    def _other_info(record: FindRecord, labels: Dict[str, str]) -> str:
        extra = []
        if record.object.material:
            extra.append(f"{labels.get('material', 'Material')}: {record.object.material}")
        if record.object.age:
            extra.append(f"{labels.get('age', 'Age')}: {record.object.age}")
        if record.notes:
            extra.append(record.notes)
        return "\n".join(extra)


def inspect_form(data: bytes) -> Dict[str, Any]:
    """
    Inspect the form field structure of a template.

    Useful for discovering field names after the template is revised.

    Returns:
        Dictionary with field_count and a list of fields (name, type, value),
        or an error message when the bytes are not a fillable PDF
    """
    try:
        form = PdfForm(load_template(data))
    except TemplateLoadException as e:
        logger.error(f"Error inspecting form: {e}")
        return {"field_count": 0, "fields": [], "error": str(e)}

    fields = [
        {
            "name": name,
            "type": info.get("/FT", ""),
            "kind": CHECKBOX if info.get("/FT") == "/Btn" else TEXT,
            "current_value": str(info.get("/V", "")),
        }
        for name, info in form._fields.items()
    ]
    return {"field_count": len(fields), "fields": fields}
