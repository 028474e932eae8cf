from decimal import Decimal
from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "kitchen_catalog.json"


class Settings(BaseSettings):
    APP_NAME: str = "Cabinet Quoting Engine"
    CATALOG_PATH: str = str(DEFAULT_CATALOG_PATH)

    # Quotes above this final total need a manager's sign-off
    APPROVAL_THRESHOLD: Decimal = Decimal("5000.00")
    QUOTE_VALIDITY_DAYS: int = 30
    QUOTE_NUMBER_PREFIX: str = "Q"

    # Rounding happens once, when totals leave the engine for display/print
    CURRENCY_PLACES: int = 2

    class Config:
        env_file = ".env"


settings = Settings()
