from pathlib import Path
from pydantic_settings import BaseSettings

class ClientSettings(BaseSettings):
    API_URL: str = "http://localhost:3000/api"
    REQUEST_TIMEOUT: float = 15.0

    # Device-local state: device key and wrapped master password
    STATE_DIR: Path = Path.home() / ".lockbox"

    # Idle seconds before the session locks itself
    AUTO_LOCK_SECONDS: float = 300

    LOG_LEVEL: str = "WARNING"

    @property
    def DEVICE_KEY_PATH(self) -> Path:
        return self.STATE_DIR / "device_key"

    @property
    def BIOMETRIC_STATE_PATH(self) -> Path:
        return self.STATE_DIR / "biometric.json"

    class Config:
        env_prefix = "LOCKBOX_"
        env_file = ".env"
        extra = "ignore"
client_settings = ClientSettings()
