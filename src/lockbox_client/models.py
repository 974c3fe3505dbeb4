from dataclasses import dataclass, asdict
from typing import Optional
import time


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class PasswordEntry:
    """One decrypted vault entry. Lives only in memory while unlocked."""
    id: str
    siteName: str
    password: str
    username: Optional[str] = None
    notes: Optional[str] = None
    updatedAt: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PasswordEntry":
        return cls(
            id=str(data["id"]),
            siteName=data["siteName"],
            password=data["password"],
            username=data.get("username"),
            notes=data.get("notes"),
            updatedAt=int(data.get("updatedAt") or 0),
        )
