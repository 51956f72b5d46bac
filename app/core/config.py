from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'ezzy_user'
    POSTGRES_PASSWORD: str = 'ezzy_pass'
    POSTGRES_DB: str = 'ezzy_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Overrides the POSTGRES_* settings (e.g. sqlite for tests)

    # Redis settings (Celery broker)
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None
    CELERY_TASK_ALWAYS_EAGER: bool = False

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2024'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # Seeded shop account
    AUTH_USER_ID: str = 'Admin'
    AUTH_PASSWORD: str = 'Rangwala'

    # Billing
    BILL_SAVE_POLICY: str = 'compensate'  # compensate | warn
    DRAFT_TTL_MINUTES: int = 240  # idle drafts are dropped after this

    # Printing
    PRINT_SPOOL_DIR: str = '/tmp/ezzy-print'
    PRINT_COMMAND: Optional[str] = None  # e.g. "lp -d shop_printer"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("CELERY_TASK_ALWAYS_EAGER", mode="before")
    @classmethod
    def parse_always_eager(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("BILL_SAVE_POLICY", mode="before")
    @classmethod
    def parse_save_policy(cls, v):
        value = str(v).lower().strip('"').strip("'")
        if value not in ("compensate", "warn"):
            raise ValueError("BILL_SAVE_POLICY must be 'compensate' or 'warn'")
        return value

settings = Settings()
