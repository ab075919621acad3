"""Pydantic Settings loaded from environment."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Intake defaults (Mangalore city centre)
    default_latitude: float = 12.9141
    default_longitude: float = 74.8560
    service_area_threshold_deg: float = 0.5
    min_description_chars: int = 15
    assessment_delay_media_seconds: float = 0.1
    assessment_delay_text_seconds: float = 1.0
    device_location_timeout_seconds: float = 15.0

    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "StraySafe/1.0"
    geocoding_timeout_seconds: float = 5.0
    geocoding_viewbox: str = "74.7,12.8,75.0,13.1"
    geocoding_country_codes: str = "in"

    ollama_url: str = "http://localhost:11434/api/generate"  # Empty disables AI assessment
    ollama_vision_model: str = "llava"
    ollama_text_model: str = "granite3.1-dense:2b"
    ai_timeout_seconds: float = 60.0
    service_region: str = "Mangalore, India"

    api_base_url: str = "http://localhost:5000"
    submit_timeout_seconds: float = 30.0
    handoff_phone_number: str = "919845255777"

    upload_dir: str = "uploads"
    media_base_url: str = ""
    max_upload_mb: int = 50

    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings()
