from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./receipt_points.db"

    default_currency: str = "PHP"

    tesseract_lang: str = "eng"
    ocr_variants: str = "minimal,enhanced,high_contrast,sharp_focus"
    ocr_timeout_seconds: int = 10
    image_fetch_timeout_seconds: int = 10

    store_cache_ttl_seconds: int = 10 * 60
    product_cache_ttl_seconds: int = 5 * 60

    disable_duplicate_detection: bool = False
    seed_catalog: bool = False

    def ocr_variant_names(self) -> list[str]:
        return [v.strip() for v in self.ocr_variants.split(",") if v.strip()]


settings = Settings()
