from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    POSTGRES_DB: str
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: str
    DEBUG: bool = False
    # For CORS
    ALLOWED_ORIGINS: list = [
        "http://localhost:5500",
        "http://127.0.0.1:5500"
    ]

    HOST: str = "localhost"
    PORT: int = 3000

    # JWT configuration
    JWT_SECRET_KEY: str  # 64-character hex string (32 bytes), defined in .env
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 7

    # Account password policy (login password, not the master password)
    MIN_ACCOUNT_PASSWORD_LENGTH: int = 6

    # Rate limiting, per client IP
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    AUTH_RATE_LIMIT_MAX_REQUESTS: int = 10

    # Request body cap for vault uploads
    MAX_BODY_BYTES: int = 10 * 1024 * 1024

    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        extra = "ignore"
settings = Settings()
