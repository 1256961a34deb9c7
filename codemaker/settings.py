# codemaker/settings.py
from pathlib import Path
from typing import List

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage
    db_url: str = "sqlite:///data/codemaker.db"

    # When false, every failure reason sent to clients is `default_error_message`
    debug: bool = False
    default_error_message: str = "query error"

    # Page rules
    # mm covered by 100 local (audio area) units, i.e. one marker cell
    grid_scale: int = 21
    minimum_paper_size: int = 63

    # Audio pages: copy audio areas when a page is duplicated
    duplicate_audio_areas: bool = Field(
        default=True,
        description="Copy audio areas along with the page on `duplicate`",
    )

    # CORS settings
    allowed_origins: str = "*"

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        env_prefix="CODEMAKER_",
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
