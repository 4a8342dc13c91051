"""QR-coded pass payloads and PNG rendering."""

import io
import json
from typing import Any

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from gatepass.registry.models import ForeignVisitor, Intern, PersonRecord

_BOX_SIZE = 6
_BORDER = 4


def pass_payload(record: PersonRecord) -> dict[str, Any]:
    """Build the data encoded in a person's QR pass.

    Gate scanners post the id back unchanged; the extra keys tell them which
    hints to send (``passport`` for foreign visitors, ``intern`` for interns).
    """
    payload: dict[str, Any] = {"name": record.name, "id": record.id}
    if isinstance(record, ForeignVisitor):
        payload["passport"] = record.passport
    elif isinstance(record, Intern):
        payload["coordinator"] = record.coordinator
        payload["intern"] = record.is_intern
    return payload


def render_qr_png(payload: dict[str, Any]) -> bytes:
    """Render a JSON payload as a high error-correction QR code PNG."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=_BOX_SIZE, border=_BORDER)
    qr.add_data(json.dumps(payload, separators=(",", ":")))
    qr.make(fit=True)
    image = qr.make_image()
    buf = io.BytesIO()
    image.save(buf)
    return buf.getvalue()
