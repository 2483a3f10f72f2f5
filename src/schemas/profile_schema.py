"""User contact profile used to fill automated tasks."""

from pydantic import BaseModel


class Profile(BaseModel):
    name: str
    email: str
    phone: str
