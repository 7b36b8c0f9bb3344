# app/services/notification_service.py
import logging
from typing import Awaitable, Callable, List

logger = logging.getLogger(__name__)

NotificationSink = Callable[[str, str, object], Awaitable[None]]

# Delivery channels (chat bot, e-mail relay, ...) register here.
_sinks: List[NotificationSink] = []


def register_sink(sink: NotificationSink) -> None:
    _sinks.append(sink)


def clear_sinks() -> None:
    _sinks.clear()


def build_message(booking, kind: str) -> str:
    if kind == "created":
        lines = [
            "NEW BOOKING RECEIVED",
            f"Customer: {booking.customer_name} ({booking.customer_phone})",
            f"Vehicle: {booking.vehicle_name or booking.vehicle_id}",
            f"Dates: {booking.start_date} to {booking.end_date}",
            f"Total: {booking.net_cost}",
        ]
        if booking.promo_code:
            lines.append(f"Promo: {booking.promo_code} (-{booking.discount_amount})")
        deposit = getattr(booking.security_deposit_type, "value", booking.security_deposit_type)
        lines.append(f"Deposit: {deposit}")
        return "\n".join(lines)
    if kind == "approved":
        return "\n".join([
            "BOOKING CONFIRMED",
            f"Hi {booking.customer_name}, your booking for {booking.vehicle_name or booking.vehicle_id} has been approved.",
            f"Dates: {booking.start_date} - {booking.end_date}",
            f"Pickup: {booking.pickup_location}",
            f"Ref ID: {booking.transaction_id}",
            f"Total: {booking.net_cost}",
            f"Advance: {booking.advance_amount} (Paid)",
        ])
    raise ValueError(f"Unknown notification kind: {kind}")


async def notify(booking, kind: str) -> None:
    """Fire-and-forget: never raises, so a delivery failure cannot undo a booking."""
    try:
        message = build_message(booking, kind)
    except Exception:
        logger.exception("Could not build %s notification for booking %s", kind, booking.id)
        return

    logger.info("Booking %s notification (%s):\n%s", booking.id, kind, message)
    for sink in list(_sinks):
        try:
            await sink(kind, message, booking)
        except Exception:
            logger.exception("Notification sink %r failed for booking %s", sink, booking.id)
