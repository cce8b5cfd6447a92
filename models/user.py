from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    id: int
    name: str
    external_id: str  # identity assigned by the chat transport, e.g. a Telegram id
    created_at: datetime
