"""Pydantic model for bookable rooms."""

from pydantic import BaseModel


class Classroom(BaseModel):
    id: str
    name: str
    building: str = ""
    capacity: int = 0
    features: list[str] = []
    is_active: bool = True
