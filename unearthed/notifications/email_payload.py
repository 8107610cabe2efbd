"""
Email handoff for finder/owner copies.

Nothing is sent from here. When the finder or owner asked for a copy, the
payload a mail-sending server would need is built, logged (without the PDF
body) and returned to the caller.
"""

import base64
from typing import Any, Dict, Optional

from shared.utils.config import settings
from shared.utils.logger import setup_logger
from unearthed.core.types import FindRecord

logger = setup_logger(__name__)


def build_email_payload(
    record: FindRecord,
    pdf_bytes: bytes,
    filename: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """
    Payload for an external mailer, or None when no copy was requested.

    Args:
        record: Find record the PDF was made from
        pdf_bytes: Serialized PDF
        filename: Attachment file name (default: configured output name)
    """
    if not record.email_wants.any:
        return None

    payload = {
        "lang": record.lang,
        "finder": {
            "name": record.finder.name,
            "address": record.finder.address,
            "phone": record.finder.phone,
            "email": record.finder.email,
        },
        "owner": {
            "name": record.owner.name,
            "address": record.owner.address,
            "phone": record.owner.phone,
            "email": record.owner.email,
        },
        "object": {
            "name": record.object.name,
            "type": record.object.type,
            "material": record.object.material,
            "age": record.object.age,
        },
        "arealtype": record.arealtype,
        "depth": record.depth,
        "location": record.location_text,
        "notes": record.notes,
        "wants": {
            "finder": record.email_wants.finder,
            "owner": record.email_wants.owner,
        },
        "pdfBase64": base64.b64encode(pdf_bytes).decode("ascii"),
        "filename": filename or settings.OUTPUT_FILENAME,
    }

    recipients = [
        who for who, wanted in payload["wants"].items() if wanted
    ]
    logger.info(
        f"Email requested for {', '.join(recipients)}: hand payload to a mail server "
        f"({payload['filename']}, {len(pdf_bytes)} bytes)"
    )
    return payload
