"""
Best-effort calendar notification after a successful booking.

The booking is posted as JSON to a webhook (an automation service that adds
it to the user's calendar). Delivery problems are logged and reported as
``False``; they never affect the booking itself.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.config import settings
from src.schemas.profile_schema import Profile
from src.schemas.provider_schema import Provider, SelectedDateTime
from src.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

PROVIDER_TYPE_TITLES = {
    "tandarts": "Dentist",
    "huisarts": "GP",
}


class BookingEvent(BaseModel):
    """Calendar event payload, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    description: str
    location: str
    start_date_time: str
    end_date_time: str
    provider_name: str
    provider_phone: str
    provider_address: str
    user_name: str
    user_email: str
    user_phone: str
    booking_id: str
    booked_at: str


def build_booking_event(
    provider: Provider,
    when: SelectedDateTime,
    profile: Profile,
    provider_type: str,
    booked_at: Optional[datetime] = None,
    appointment_minutes: Optional[int] = None,
) -> BookingEvent:
    """Describe a confirmed booking as a calendar event."""
    minutes = appointment_minutes or settings.integrations.appointment_minutes
    start = datetime.fromisoformat(f"{when.date}T{when.time}")
    end = start + timedelta(minutes=minutes)
    type_label = PROVIDER_TYPE_TITLES.get(provider_type, provider_type)

    description = "\n".join([
        "Appointment booked via LifeAdmin",
        "",
        f"Location: {provider.address}",
        f"Phone: {provider.phone}",
        "",
        f"Booked for: {profile.name}",
        f"Email: {profile.email}",
        f"Phone: {profile.phone}",
    ])

    return BookingEvent(
        title=f"{type_label} appointment - {provider.name}",
        description=description,
        location=provider.address,
        start_date_time=start.isoformat(),
        end_date_time=end.isoformat(),
        provider_name=provider.name,
        provider_phone=provider.phone,
        provider_address=provider.address,
        user_name=profile.name,
        user_email=profile.email,
        user_phone=profile.phone,
        booking_id=generate_id("booking"),
        booked_at=(booked_at or utc_now()).isoformat(),
    )


class BookingNotifier(Protocol):
    async def notify(self, event: BookingEvent) -> bool:
        ...


class NullNotifier:
    """Used when no calendar webhook is configured."""

    async def notify(self, event: BookingEvent) -> bool:
        logger.debug("Calendar webhook not configured, skipping: %s", event.title)
        return False


class CalendarWebhookNotifier:
    """Posts booking events to a calendar webhook over HTTP."""

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = url
        self._client = client
        self._timeout = timeout or settings.integrations.webhook_timeout_sec

    async def _post(self, payload: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(self.url, json=payload, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self.url, json=payload)

    async def notify(self, event: BookingEvent) -> bool:
        logger.info("Sending booking to calendar webhook: %s", event.title)
        try:
            response = await self._post(event.model_dump(by_alias=True))
        except httpx.HTTPError as exc:
            logger.error("Calendar webhook error (service may be down): %s", exc)
            return False

        if response.is_success:
            logger.info("Calendar webhook accepted booking: %s", response.status_code)
            return True
        logger.error(
            "Calendar webhook failed: %s %s", response.status_code, response.reason_phrase
        )
        return False


def create_notifier(url: Optional[str] = None) -> BookingNotifier:
    """Webhook notifier when a URL is configured, otherwise a no-op."""
    url = url if url is not None else settings.integrations.calendar_webhook_url
    if url:
        return CalendarWebhookNotifier(url)
    return NullNotifier()
