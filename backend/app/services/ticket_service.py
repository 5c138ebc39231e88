"""
Ticket artifact generation.

A ticket is a QR code (PNG, base64 data URL) that embeds a JSON record of
the booking. The record carries a verification URL built only from the
booking reference, so scanning the code and calling
GET /api/v1/verify-ticket/{reference} reproduces the booking from the store.

The record is also HMAC-SHA256 signed over its canonical JSON form. A door
scanner holding the signing key can reject a forged image offline instead
of trusting whatever reference the image happens to contain.

Encoding runs after the booking commits and never fails a booking: any
error surfaces as ArtifactGenerationFailed and the ticket stays NULL until
an operator reruns scripts/regenerate_tickets.
"""

import base64
import hashlib
import hmac
import io
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from app.core.config import get_settings
from app.core.exceptions import ArtifactGenerationFailed
from app.core.logging import get_logger

logger = get_logger(__name__)

DATA_URL_PREFIX = "data:image/png;base64,"


@dataclass(frozen=True)
class BookingSummary:
    """Read-only view of a committed booking, everything a ticket prints."""

    booking_id: int
    booking_reference: str
    event_title: str
    venue: str
    event_date: datetime
    seat_numbers: tuple[str, ...]
    total_amount: Decimal
    holder_name: str


def _canonical(record: dict) -> bytes:
    return json.dumps(record, sort_keys=True, separators=(",", ":"), default=str).encode()


class TicketGenerator:
    def __init__(self, base_url: str, signing_key: str):
        self.base_url = base_url.rstrip("/")
        self._key = signing_key.encode()

    def verification_url(self, booking_reference: str) -> str:
        return f"{self.base_url}/api/v1/verify-ticket/{booking_reference}"

    def sign(self, record: dict) -> str:
        unsigned = {k: v for k, v in record.items() if k != "signature"}
        return hmac.new(self._key, _canonical(unsigned), hashlib.sha256).hexdigest()

    def verify_signature(self, record: dict) -> bool:
        signature = record.get("signature")
        if not isinstance(signature, str):
            return False
        return hmac.compare_digest(self.sign(record), signature)

    def build_record(self, summary: BookingSummary, generated_at: Optional[datetime] = None) -> dict:
        generated_at = generated_at or datetime.now(timezone.utc)
        record = {
            "bookingId": summary.booking_id,
            "bookingReference": summary.booking_reference,
            "eventTitle": summary.event_title,
            "venue": summary.venue,
            "eventDate": summary.event_date.isoformat(),
            "seatNumbers": list(summary.seat_numbers),
            "totalAmount": str(summary.total_amount),
            "userName": summary.holder_name,
            "verificationUrl": self.verification_url(summary.booking_reference),
            "generatedAt": generated_at.isoformat(),
        }
        record["signature"] = self.sign(record)
        return record

    def generate(self, summary: BookingSummary) -> str:
        """Encode the signed record as a QR PNG data URL."""
        try:
            record = self.build_record(summary)
            qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=2)
            qr.add_data(_canonical(record).decode())
            qr.make(fit=True)
            image = qr.make_image(fill_color="black", back_color="white")

            buffer = io.BytesIO()
            image.save(buffer, format="PNG")
        except Exception as e:
            logger.error(
                "ticket_generation_failed",
                booking_reference=summary.booking_reference,
                error=str(e),
            )
            raise ArtifactGenerationFailed(f"Failed to generate ticket: {e}") from e

        artifact = DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")
        logger.info(
            "ticket_generated",
            booking_reference=summary.booking_reference,
            size_bytes=len(artifact),
        )
        return artifact


def decode_artifact(artifact: str) -> bytes:
    """PNG bytes of a ticket artifact."""
    if not artifact.startswith(DATA_URL_PREFIX):
        raise ValueError("Not a PNG data URL")
    return base64.b64decode(artifact[len(DATA_URL_PREFIX):])


def get_ticket_generator() -> TicketGenerator:
    settings = get_settings()
    return TicketGenerator(settings.PUBLIC_BASE_URL, settings.TICKET_SIGNING_KEY)
