# agritrace/settings.py
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./agritrace.db"
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # verification behaviour
    VERIFY_DELAY_MS: int = 1500
    MATCH_EXPORTER_NAME: bool = True
    VERIFY_BASE_URL: str = "https://lacra.gov.lr/verify"

    # report letterhead / footer
    ORGANIZATION_NAME: str = "Liberia Agriculture Commodity Regulatory Authority (LACRA)"
    CONTACT_LINE: str = "For verification inquiries contact LACRA at verify@lacra.gov.lr | +231 77 000 0000"

    # optional upstream AgriTrace API that owns the record collections
    UPSTREAM_API_URL: str | None = None
    UPSTREAM_TIMEOUT: int = 30

    EXPIRY_CHECK_MINUTES: int = 60

    class Config:
        env_file = ".env"


settings = Settings()
