"""
Provider catalog, search and mock availability.

In production, provider data would come from a directory service or an
AI-assisted lookup, and slots from each practice's booking system.
"""

import logging
import random
from datetime import date, timedelta
from typing import Optional

from src.schemas.provider_schema import Provider, TimeSlotDay

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 5
SLOT_LOOKAHEAD_DAYS = 5
SPEECH_LIST_SIZE = 3
DEFAULT_CATEGORY = "tandarts"

# (time, probability the slot is open)
SLOT_TEMPLATE: list[tuple[str, float]] = [
    ("09:00", 0.7), ("09:30", 0.7), ("10:00", 0.7), ("10:30", 0.5), ("11:00", 0.5),
    ("13:00", 0.7), ("13:30", 0.7), ("14:00", 0.5), ("14:30", 0.5), ("15:00", 0.6),
    ("15:30", 0.4),
]

PROVIDER_CATALOG: dict[str, list[dict]] = {
    "tandarts": [
        {
            "id": "tand-001",
            "name": "Tandartspraktijk De Witte Tand",
            "address": "Prinsengracht 112, 1015 EA Amsterdam",
            "phone": "020-624 1180",
            "rating": 4.8,
            "review_count": 212,
            "next_available": "morgen",
            "specialties": ["Algemene tandheelkunde", "Implantaten"],
        },
        {
            "id": "tand-002",
            "name": "Dental Care Plus",
            "address": "Overtoom 45, 1054 HB Amsterdam",
            "phone": "020-612 7744",
            "rating": 4.6,
            "review_count": 158,
            "next_available": "deze week",
            "specialties": ["Cosmetische tandheelkunde", "Bleken"],
        },
        {
            "id": "tand-003",
            "name": "Mondzorg Centrum Oost",
            "address": "Linnaeusstraat 89, 1093 EK Amsterdam",
            "phone": "020-665 3021",
            "rating": 4.6,
            "review_count": 97,
            "next_available": "vandaag",
            "specialties": ["Kindertandheelkunde", "Mondhygiëne"],
        },
        {
            "id": "tand-004",
            "name": "Tandarts Utrecht Centrum",
            "address": "Oudegracht 201, 3511 NH Utrecht",
            "phone": "030-231 4455",
            "rating": 4.4,
            "review_count": 131,
            "next_available": "morgen",
            "specialties": ["Algemene tandheelkunde", "Wortelkanaalbehandeling"],
        },
    ],
    "huisarts": [
        {
            "id": "huis-001",
            "name": "Huisartsenpraktijk Jordaan",
            "address": "Westerstraat 30, 1015 MN Amsterdam",
            "phone": "020-626 2950",
            "rating": 4.5,
            "review_count": 88,
            "next_available": "morgen",
            "specialties": ["Algemene geneeskunde", "Reizigersvaccinaties"],
        },
        {
            "id": "huis-002",
            "name": "Gezondheidscentrum Zuid",
            "address": "Van Woustraat 150, 1073 LV Amsterdam",
            "phone": "020-671 0600",
            "rating": 4.2,
            "review_count": 143,
            "next_available": "deze week",
            "specialties": ["Algemene geneeskunde", "Diabeteszorg"],
        },
    ],
}

CATEGORY_ALIASES: dict[str, str] = {
    "dentist": "tandarts", "tandartsen": "tandarts", "tandartspraktijk": "tandarts",
    "gp": "huisarts", "doctor": "huisarts", "dokter": "huisarts",
    "huisdokter": "huisarts", "general practitioner": "huisarts",
}

CATEGORY_LABELS: dict[str, str] = {
    "tandarts": "dental practice",
    "huisarts": "GP practice",
}


def match_category(query: str) -> Optional[str]:
    """Map free text or an alias to a catalog category. Returns None if no match."""
    normalized = (query or "").lower().strip()
    if not normalized:
        return None
    if normalized in PROVIDER_CATALOG:
        return normalized
    for alias, category in CATEGORY_ALIASES.items():
        if alias in normalized:
            return category
    for category in PROVIDER_CATALOG:
        if category in normalized:
            return category
    return None


def _to_provider(category: str, record: dict) -> Provider:
    return Provider(category=category, **record)


def search_providers(
    category: str, query: Optional[str] = None, limit: int = DEFAULT_SEARCH_LIMIT
) -> list[Provider]:
    """Providers in ``category`` matching ``query``, highest rated first.

    Ties keep catalog order.
    """
    resolved = match_category(category) or (category or "").lower().strip()
    records = PROVIDER_CATALOG.get(resolved, [])

    if query:
        needle = query.lower().strip()
        records = [
            r for r in records
            if needle in r["name"].lower()
            or needle in r["address"].lower()
            or any(needle in s.lower() for s in r["specialties"])
        ]

    ranked = sorted(records, key=lambda r: r["rating"], reverse=True)
    results = [_to_provider(resolved, r) for r in ranked[:limit]]
    logger.debug("Search %s (query=%r): %d results", resolved, query, len(results))
    return results


def search_with_fallback(
    category: str, query: Optional[str] = None, limit: int = DEFAULT_SEARCH_LIMIT
) -> list[Provider]:
    """Search with the query, retrying without it when nothing matches."""
    results = search_providers(category, query, limit)
    if not results and query:
        logger.info("No %s matches for %r, retrying without query", category, query)
        results = search_providers(category, None, limit)
    return results


def get_provider_by_id(provider_id: str) -> Optional[Provider]:
    for category, records in PROVIDER_CATALOG.items():
        for record in records:
            if record["id"] == provider_id:
                return _to_provider(category, record)
    return None


def get_available_slots(
    provider_id: str, today: date, days: int = SLOT_LOOKAHEAD_DAYS
) -> list[TimeSlotDay]:
    """Open slots for the next ``days`` days, weekends excluded.

    Availability is seeded per provider and date so repeated lookups within
    a conversation agree. Every returned day has at least one slot.
    """
    result: list[TimeSlotDay] = []
    for offset in range(1, days + 1):
        day = today + timedelta(days=offset)
        if day.weekday() >= 5:
            continue
        day_str = day.isoformat()
        rng = random.Random(f"{provider_id}:{day_str}")
        slots = [t for t, p in SLOT_TEMPLATE if rng.random() < p]
        if not slots:
            slots = [SLOT_TEMPLATE[0][0]]
        result.append(TimeSlotDay(date=day_str, slots=sorted(slots)))
    return result


def summarize_slots(days: list[TimeSlotDay], limit: int = 3) -> list[str]:
    """Short human strings such as ``2025-01-02: 09:00, 09:30``."""
    return [f"{d.date}: {', '.join(d.slots[:limit])}" for d in days if d.slots]


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category or "provider")


def format_provider_for_speech(provider: Provider) -> str:
    return (
        f"{provider.name} at {provider.address}. Rated {provider.rating} from "
        f"{provider.review_count} reviews. Next available: {provider.next_available}."
    )


def format_providers_for_speech(providers: list[Provider], category: str) -> str:
    label = category_label(category)
    if not providers:
        return f"I couldn't find any {label}s."
    if len(providers) == 1:
        return f"I found one {label}: {format_provider_for_speech(providers[0])}"

    listing = ". ".join(
        f"{i}. {p.name}, rated {p.rating}"
        for i, p in enumerate(providers[:SPEECH_LIST_SIZE], start=1)
    )
    return (
        f"I found {len(providers)} {label}s. The top {min(len(providers), SPEECH_LIST_SIZE)} are: "
        f"{listing}. Which one would you like? You can also say \"pick the best\"."
    )
