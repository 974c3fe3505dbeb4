from dataclasses import dataclass
from datetime import datetime
from typing import Optional

@dataclass
class UserRecord:
    id: int
    email: str
    password_hash: str
    created_at: datetime

@dataclass
class VaultRecord:
    user_id: int
    master_hash: str
    encrypted_data: Optional[str]
    updated_at: datetime
