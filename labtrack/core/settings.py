from decimal import Decimal
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "LabTrack Maintenance API"
    db_endpoint: str = "localhost"
    db_user: str = "labtrack"
    db_pw: str = ""
    db_port: str = "5432"
    db_name: str = "labtrack"
    # Full async URL, overrides the parts above when set
    db_url: Optional[str] = None
    secret_key: str
    algorithm: str = "HS256"

    # Environment configuration
    environment: str = "production"  # development, staging, or production

    # Fines
    fine_per_day: Decimal = Decimal("10")
    currency_symbol: str = "₱"

    # Daily maintenance sweep
    maintenance_timezone: str = "Asia/Manila"
    maintenance_hour: int = 0
    maintenance_minute: int = 0
    maintenance_batch_size: int = 400  # Firestore-style stores cap a batch at 500 writes
    archive_completed_transactions: bool = False

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        return f"postgresql+psycopg_async://{self.db_user}:{self.db_pw}@{self.db_endpoint}:{self.db_port}/{self.db_name}?sslmode=require"


settings = Settings()
