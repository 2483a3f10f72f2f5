"""Service provider and availability models."""

from pydantic import BaseModel, Field


class Provider(BaseModel):
    """Immutable snapshot of a provider returned by search."""

    model_config = {"frozen": True}

    id: str
    name: str
    category: str
    address: str
    phone: str
    rating: float
    review_count: int = 0
    next_available: str = ""
    specialties: list[str] = Field(default_factory=list)
    available_slots_summary: list[str] = Field(default_factory=list)


class TimeSlotDay(BaseModel):
    """Ascending time-of-day slots for one calendar date (YYYY-MM-DD)."""

    date: str
    slots: list[str] = Field(default_factory=list)


class SelectedDateTime(BaseModel):
    date: str
    time: str

    def label(self) -> str:
        return f"{self.date} at {self.time}"
