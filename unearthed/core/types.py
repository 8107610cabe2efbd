"""
Type definitions for the find-report export.

This module defines all types used throughout the export pipeline: the
find record collected from the user, the location context produced by the
resolution stage, per-field write results and the final export result.
"""

import copy
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

from shared.utils.helpers import as_flag, as_text, safe_get

SUPPORTED_LANGUAGES = ("en", "no", "es")
COORD_SYSTEMS = ("utm32", "wgs84")

PhotoSource = Union[str, Path, bytes]


def _text_fields(cls, data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    data = data or {}
    return {f.name: as_text(data.get(f.name)) for f in fields(cls)}


@dataclass
class Person:
    """Finder or land owner contact details."""
    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Person":
        return cls(**_text_fields(cls, data))

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass
class Owner(Person):
    """Land owner, including the cadastral fields the user may have typed."""
    kommune: str = ""
    gnr: str = ""
    bnr: str = ""


@dataclass
class FindObject:
    """The found object itself."""
    name: str = ""
    type: str = ""
    material: str = ""
    age: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FindObject":
        return cls(**_text_fields(cls, data))


@dataclass
class EmailWants:
    """Whether finder and/or owner asked for a copy by email."""
    finder: bool = False
    owner: bool = False

    @property
    def any(self) -> bool:
        return self.finder or self.owner


@dataclass
class FindRecord:
    """
    Snapshot of everything the user entered for one export.

    Attributes:
        finder: Finder contact details
        owner: Land owner details
        object: Object name, type, assumed material and estimated age
        arealtype: Area type as typed/selected (normalized when mapped)
        depth: Find depth in cm, free text
        location_text: "Lat: x, Lon: y" or "N: x, E: y"
        notes: Free text notes
        photos: Photo sources (file paths or raw bytes), in upload order
        email_wants: Copy-by-email flags
        lang: Summary language (en/no/es)
    """
    finder: Person = field(default_factory=Person)
    owner: Owner = field(default_factory=Owner)
    object: FindObject = field(default_factory=FindObject)
    arealtype: str = ""
    depth: str = ""
    location_text: str = ""
    notes: str = ""
    photos: List[PhotoSource] = field(default_factory=list)
    email_wants: EmailWants = field(default_factory=EmailWants)
    lang: str = "no"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_lang: str = "no") -> "FindRecord":
        """
        Build a record from loosely structured input (CLI file, API payload).

        The input is deep-copied first so later edits by the caller cannot
        leak into an export that is already running.
        """
        data = copy.deepcopy(data or {})
        wants = data.get("email_wants") or data.get("wants") or {}
        lang = as_text(data.get("lang")).lower() or default_lang
        if lang not in SUPPORTED_LANGUAGES:
            lang = default_lang

        photos = data.get("photos") or []
        if isinstance(photos, (str, bytes, Path)):
            photos = [photos]

        return cls(
            finder=Person.from_dict(data.get("finder")),
            owner=Owner.from_dict(data.get("owner")),
            object=FindObject.from_dict(data.get("object")),
            arealtype=as_text(data.get("arealtype")),
            depth=as_text(data.get("depth")),
            location_text=as_text(data.get("location_text") or data.get("location")),
            notes=as_text(data.get("notes")),
            photos=list(photos),
            email_wants=EmailWants(
                finder=as_flag(safe_get(wants, "finder")),
                owner=as_flag(safe_get(wants, "owner")),
            ),
            lang=lang,
        )


@dataclass
class Photo:
    """A decoded photo ready for embedding."""
    data: bytes
    mime: str  # "image/png" or "image/jpeg"
    source: str = ""


@dataclass
class ResolvedLocation:
    """WGS84 position, with UTM32 coordinates when inside zone 32."""
    lat: float
    lon: float
    northing: Optional[float] = None
    easting: Optional[float] = None

    @property
    def has_utm32(self) -> bool:
        return self.northing is not None and self.easting is not None


@dataclass
class AddressLookupResult:
    """Nearest address returned by the Geonorge address point search."""
    street_text: str = ""
    postal_code: str = ""
    postal_place: str = ""
    municipality_name: str = ""
    municipality_number: str = ""
    farm_number: str = ""
    holding_number: str = ""
    distance_meters: Optional[float] = None
    point_lat: Optional[float] = None
    point_lon: Optional[float] = None


@dataclass
class MunicipalityLookupResult:
    """County and municipality containing a point."""
    county_name: str = ""
    county_number: str = ""
    municipality_name: str = ""
    municipality_number: str = ""


@dataclass
class LocationContext:
    """
    Everything the resolution stage learned about where the find was made.

    Passed explicitly into the form populator.
    """
    position: Optional[ResolvedLocation] = None
    preferred_system: str = "utm32"
    effective_system: str = "wgs84"
    address: Optional[AddressLookupResult] = None
    municipality: Optional[MunicipalityLookupResult] = None

    @property
    def utm32_fallback(self) -> bool:
        """True when UTM32 was requested but the position is outside zone 32."""
        return (
            self.position is not None
            and self.preferred_system == "utm32"
            and self.effective_system != "utm32"
        )


@dataclass
class ParsedAddress:
    """A free-text address split into the three fields the form wants."""
    street: str = ""
    postal_code: str = ""
    place: str = ""


@dataclass
class FieldWriteResult:
    """
    Outcome of one write into the template's form.

    Attributes:
        logical_name: Binding name (e.g. "finder_name")
        field_name: Template field name (e.g. "Navn finner")
        status: "written" or "skipped"
        value: Value written (text, or True/False for checkboxes)
        reason: Why the write was skipped
    """
    logical_name: str
    field_name: str
    status: str
    value: Any = None
    reason: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.status == "written"


@dataclass
class PopulateReport:
    """Aggregated field write results for one populate run."""
    results: List[FieldWriteResult] = field(default_factory=list)

    def add(self, result: FieldWriteResult) -> FieldWriteResult:
        self.results.append(result)
        return result

    @property
    def written(self) -> List[FieldWriteResult]:
        return [r for r in self.results if r.written]

    @property
    def skipped(self) -> List[FieldWriteResult]:
        return [r for r in self.results if not r.written]

    def values(self) -> Dict[str, Any]:
        """Template field name -> last value written."""
        return {r.field_name: r.value for r in self.results if r.written}

    def get(self, logical_name: str) -> Optional[FieldWriteResult]:
        for result in reversed(self.results):
            if result.logical_name == logical_name:
                return result
        return None

    def dict(self) -> Dict[str, Any]:
        return {
            "written": len(self.written),
            "skipped": {r.logical_name: r.reason for r in self.skipped},
        }


class ExportState(str, Enum):
    """States of the export pipeline."""
    IDLE = "idle"
    COLLECTING_INPUTS = "collecting_inputs"
    RESOLVING_LOCATION = "resolving_location"
    LOADING_TEMPLATE = "loading_template"
    POPULATING_FORM = "populating_form"
    COMPOSING_PAGES = "composing_pages"
    FINALIZING = "finalizing"
    DOWNLOADING = "downloading"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportResult:
    """
    Result of one export run.

    Attributes:
        success: Whether the PDF was produced
        state: Final pipeline state (DONE or FAILED)
        output_path: Where the PDF was written (if written to disk)
        pdf_bytes: Serialized PDF
        page_count: Pages in the output document
        populate_report: Per-field write outcomes
        location: Resolution stage output
        email_payload: Handoff payload when a copy was requested
        metadata: State trail and counters
        error: Error message (if failed)
    """
    success: bool
    state: ExportState
    output_path: Optional[str] = None
    pdf_bytes: Optional[bytes] = None
    page_count: int = 0
    populate_report: Optional[PopulateReport] = None
    location: Optional[LocationContext] = None
    email_payload: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def dict(self) -> Dict[str, Any]:
        """Convert to dictionary for CLI output and logs."""
        return {
            "success": self.success,
            "state": self.state.value,
            "output_path": self.output_path,
            "page_count": self.page_count,
            "fields": self.populate_report.dict() if self.populate_report else None,
            "utm32_fallback": self.location.utm32_fallback if self.location else None,
            "email_requested": self.email_payload is not None,
            "metadata": self.metadata,
            "error": self.error,
        }
