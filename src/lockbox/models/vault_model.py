from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class VaultPayload(BaseModel):
    """Client-encrypted vault pair. The server stores both values verbatim."""
    masterHash: str = Field(..., min_length=1, max_length=500,
                            description="Base64 salt||PBKDF2 digest of the master password")
    encryptedData: Optional[str] = Field(None, description="Base64 salt||iv||AES-GCM ciphertext")


class VaultResponse(BaseModel):
    masterHash: Optional[str] = None
    encryptedData: Optional[str] = None


class VaultSavedResponse(BaseModel):
    message: str
    updatedAt: datetime


class MessageResponse(BaseModel):
    message: str
