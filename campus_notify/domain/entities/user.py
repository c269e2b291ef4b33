"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Identity attributes the notification core needs from the user directory."""

    id: int | None
    username: str
    email: str
    is_active: bool = True
    created_at: datetime | None = None
