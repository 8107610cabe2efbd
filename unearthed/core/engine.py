"""
Find Report Export Engine.

Main orchestrator for the export. Runs the pipeline as an explicit state
machine:

    IDLE → COLLECTING_INPUTS → RESOLVING_LOCATION → LOADING_TEMPLATE →
    POPULATING_FORM → COMPOSING_PAGES → FINALIZING → DOWNLOADING → DONE

with FAILED reachable from every non-idle state. Only a template that
cannot be loaded is fatal; lookups, single fields and single photos
degrade to "left blank" and are logged.
"""

import asyncio
import copy
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
from pypdf import PdfReader, PdfWriter

from shared.utils.config import settings
from shared.utils.logger import setup_logger, log_degraded, log_error
from unearthed.core.exceptions import TemplateLoadException
from unearthed.core.types import (
    ExportResult,
    ExportState,
    FindRecord,
    LocationContext,
    Photo,
)
from unearthed.data_providers.geonorge_provider import GeonorgeProvider
from unearthed.data_providers.photo_reader import read_photos
from unearthed.form_filler.pdf_form_filler import FormPopulator, PdfForm, load_template
from unearthed.geo.coordinates import get_effective_system, parse_location_text, resolve_position
from unearthed.mappers.field_mapper import FieldBinding, get_binding
from unearthed.mappers.labels import get_labels
from unearthed.notifications.email_payload import build_email_payload
from unearthed.renderers.summary_renderer import SummaryRenderer
from unearthed.storage.local_store import LocalStore, prefill_finder

logger = setup_logger(__name__)


class ExportEngine:
    """
    Find report export engine.

    Orchestrates the complete export workflow:
    1. Snapshot the find record (and remember the finder)
    2. Resolve address, municipality and photos concurrently
    3. Load the fillable template
    4. Fill the form fields
    5. Append the summary and photo pages
    6. Flag appearances for regeneration and serialize
    7. Write the PDF and build the email handoff payload

    Example:
        >>> async with ExportEngine() as engine:
        ...     result = await engine.export({"finder": {"name": "Kari"}, ...})
        >>> print(result.output_path)
    """

    def __init__(
        self,
        geo_provider: Optional[GeonorgeProvider] = None,
        store: Optional[LocalStore] = None,
        template_source: Optional[str] = None,
        output_dir: Optional[str] = None,
        binding: Optional[FieldBinding] = None,
        renderer: Optional[SummaryRenderer] = None,
    ):
        """
        Initialize export engine.

        Args:
            geo_provider: Geonorge client (created lazily if omitted)
            store: Device-local store (defaults to settings.LOCAL_STORAGE_DIR)
            template_source: Template path or URL (defaults to settings.TEMPLATE_PATH)
            output_dir: Directory the PDF is written to
            binding: Field binding table (defaults to the configured form)
            renderer: Summary page renderer
        """
        self.template_source = template_source or settings.TEMPLATE_PATH
        self.output_dir = Path(output_dir or settings.OUTPUT_DIR)
        self.store = store or LocalStore()

        self._geo_provider = geo_provider
        self._owns_provider = geo_provider is None
        self._binding = binding
        self._populator: Optional[FormPopulator] = None
        self.renderer = renderer or SummaryRenderer()

        # One export at a time per engine; a second trigger waits its turn.
        # Bound to the running loop on first use, not at construction.
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

        logger.info(f"ExportEngine initialized: template={self.template_source}")

    async def __aenter__(self) -> "ExportEngine":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_provider and self._geo_provider is not None:
            await self._geo_provider.aclose()
            self._geo_provider = None

    @property
    def geo_provider(self) -> GeonorgeProvider:
        """
        Lazy-load Geonorge provider.

        Returns:
            GeonorgeProvider instance
        """
        if self._geo_provider is None:
            self._geo_provider = GeonorgeProvider()
            logger.info("Initialized GeonorgeProvider")
        return self._geo_provider

    @property
    def populator(self) -> FormPopulator:
        """
        Lazy-load form populator with the binding table.

        Returns:
            FormPopulator instance
        """
        if self._populator is None:
            self._populator = FormPopulator(self._binding or get_binding())
            logger.info("Initialized FormPopulator")
        return self._populator

    async def export(
        self,
        data: Union[FindRecord, Dict[str, Any]],
        preferred_system: Optional[str] = None,
        write_output: bool = True,
        today: Optional[date] = None,
    ) -> ExportResult:
        """
        Run one export.

        Args:
            data: Find record, or the raw input it is built from
            preferred_system: "utm32" or "wgs84" (defaults to the stored preference)
            write_output: Write the PDF to the output directory
            today: Find date (defaults to the system clock)

        Returns:
            ExportResult; success is False only for fatal failures
        """
        async with self._export_lock():
            return await self._run(data, preferred_system, write_output, today)

    def _export_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _run(
        self,
        data: Union[FindRecord, Dict[str, Any]],
        preferred_system: Optional[str],
        write_output: bool,
        today: Optional[date],
    ) -> ExportResult:
        states: List[str] = []
        metadata: Dict[str, Any] = {"states": states}
        location: Optional[LocationContext] = None
        state = ExportState.IDLE

        def enter(next_state: ExportState) -> ExportState:
            states.append(next_state.value)
            logger.info(f"Export: {state.value} -> {next_state.value}")
            return next_state

        try:
            state = enter(ExportState.COLLECTING_INPUTS)
            record = self._collect_inputs(data)
            labels = get_labels(record.lang)

            state = enter(ExportState.RESOLVING_LOCATION)
            location, photos = await self._resolve_location(record, preferred_system)
            metadata["photos_requested"] = len(record.photos)
            metadata["photos_read"] = len(photos)

            state = enter(ExportState.LOADING_TEMPLATE)
            writer = await self._load_template()

            state = enter(ExportState.POPULATING_FORM)
            form = PdfForm(writer)
            report = self.populator.populate(form, record, location, labels, today=today)

            state = enter(ExportState.COMPOSING_PAGES)
            metadata["appended_pages"] = self._compose_pages(writer, record, photos, labels)

            state = enter(ExportState.FINALIZING)
            form.finalize()

            state = enter(ExportState.DOWNLOADING)
            pdf_bytes = self._serialize(writer)
            output_path = self._write_output(pdf_bytes) if write_output else None

            state = enter(ExportState.DONE)

        except Exception as e:
            log_error(logger, e, f"Could not create the filled PDF ({state.value})")
            enter(ExportState.FAILED)
            return ExportResult(
                success=False,
                state=ExportState.FAILED,
                location=location,
                metadata=metadata,
                error=str(e),
            )

        email_payload = build_email_payload(record, pdf_bytes)
        logger.info(
            f"Export complete: {len(writer.pages)} page(s), "
            f"{len(report.written)} field(s) written, {len(report.skipped)} skipped"
        )
        return ExportResult(
            success=True,
            state=ExportState.DONE,
            output_path=str(output_path) if output_path else None,
            pdf_bytes=pdf_bytes,
            page_count=len(writer.pages),
            populate_report=report,
            location=location,
            email_payload=email_payload,
            metadata=metadata,
        )

    def _collect_inputs(self, data: Union[FindRecord, Dict[str, Any]]) -> FindRecord:
        """Synchronous snapshot of the input; nothing async runs before it."""
        if isinstance(data, FindRecord):
            record = copy.deepcopy(data)
        else:
            record = FindRecord.from_dict(data, default_lang=self.store.language())

        record.finder = prefill_finder(record.finder, self.store.remembered_finder())
        if not record.finder.is_empty():
            self.store.remember_finder(record.finder)

        logger.info(
            f"Collected find '{record.object.name}' ({record.lang}), "
            f"{len(record.photos)} photo(s)"
        )
        return record

    async def _resolve_location(
        self, record: FindRecord, preferred_system: Optional[str]
    ) -> Tuple[LocationContext, List[Photo]]:
        """Address lookup, municipality lookup and photo reading, concurrently."""
        preferred = preferred_system or self.store.coord_system()
        context = LocationContext(preferred_system=preferred, effective_system=preferred)

        coords = parse_location_text(record.location_text)
        if coords is None:
            log_degraded(logger, "resolving_location", "position", f"unparsable '{record.location_text}'")
            lookups = [self._nothing(), self._nothing()]
        else:
            lat, lon = coords
            context.position = resolve_position(lat, lon)
            context.effective_system = get_effective_system(preferred, lon)
            if context.utm32_fallback:
                logger.warning(f"Longitude {lon:.4f} is outside UTM zone 32, using WGS84")
            lookups = [
                self.geo_provider.resolve_address(lat, lon),
                self.geo_provider.resolve_municipality(lat, lon),
            ]

        address, municipality, photos = await asyncio.gather(
            *lookups, read_photos(record.photos), return_exceptions=True
        )

        context.address = self._settled(address, "address lookup")
        context.municipality = self._settled(municipality, "municipality lookup")
        photos = self._settled(photos, "photos") or []
        return context, photos

    @staticmethod
    async def _nothing() -> None:
        return None

    @staticmethod
    def _settled(outcome: Any, what: str) -> Any:
        if isinstance(outcome, BaseException):
            log_degraded(logger, "resolving_location", what, outcome)
            return None
        return outcome

    async def _load_template(self) -> PdfWriter:
        """
        Fetch and parse the template. The one fatal stage.

        Raises:
            TemplateLoadException: Template unreachable or not a fillable PDF
        """
        source = self.template_source
        try:
            if source.lower().startswith(("http://", "https://")):
                async with httpx.AsyncClient(timeout=settings.LOOKUP_TIMEOUT_SECONDS) as client:
                    response = await client.get(source)
                    response.raise_for_status()
                    data = response.content
            else:
                data = await asyncio.to_thread(Path(source).read_bytes)
        except (httpx.HTTPError, OSError) as e:
            raise TemplateLoadException(f"Could not fetch {source}: {e}") from e

        return load_template(data, source)

    def _compose_pages(
        self,
        writer: PdfWriter,
        record: FindRecord,
        photos: List[Photo],
        labels: Dict[str, str],
    ) -> int:
        """Append summary and photo pages; failures leave the form as is."""
        try:
            pdf_bytes, _ = self.renderer.compose(record, photos, labels)
            reader = PdfReader(BytesIO(pdf_bytes))
            for page in reader.pages:
                writer.add_page(page)
        except Exception as e:
            log_degraded(logger, "composing_pages", "summary pages", e)
            return 0
        return len(reader.pages)

    @staticmethod
    def _serialize(writer: PdfWriter) -> bytes:
        buffer = BytesIO()
        writer.write(buffer)
        return buffer.getvalue()

    def _write_output(self, pdf_bytes: bytes) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / settings.OUTPUT_FILENAME
        with open(output_path, "wb") as f:
            f.write(pdf_bytes)
        logger.info(f"Saved filled PDF: {output_path}")
        return output_path
