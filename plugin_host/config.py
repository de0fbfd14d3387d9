from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from functools import lru_cache
import os


BUILTIN_PLUGIN_DIR = Path(__file__).parent / "plugins"


class Settings(BaseSettings):
    """Application settings loaded from .env (or custom env file)"""

    # Allow overriding env_file via PLUGIN_HOST_ENV_FILE environment variable
    model_config = SettingsConfigDict(  # type: ignore[misc]
        env_file=os.environ.get('PLUGIN_HOST_ENV_FILE', '.env'),
        env_file_encoding='utf-8',
        extra='ignore'
    )

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 3000
    API_PREFIX: str = "/api"

    # Plugins
    PLUGIN_DIR: str = ""  # Empty: built-in plugins directory
    PLUGIN_EXTENSIONS: str = ".py"

    # Paths
    DATA_ROOT: str = "data"
    SETTINGS_FILE: str = ""  # Empty: data_root/settings.json

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_CATEGORIES: str = ""

    @property
    def data_root(self) -> Path:
        return Path(self.DATA_ROOT)

    @property
    def plugin_dir(self) -> Path:
        if not self.PLUGIN_DIR:
            return BUILTIN_PLUGIN_DIR
        return Path(self.PLUGIN_DIR)

    @property
    def plugin_extensions(self) -> list[str]:
        """Recognized plugin file extensions, normalized to start with a dot"""
        extensions = []
        for ext in self.PLUGIN_EXTENSIONS.split(','):
            ext = ext.strip()
            if ext:
                extensions.append(ext if ext.startswith('.') else f'.{ext}')
        return extensions

    @property
    def settings_file(self) -> Path:
        if not self.SETTINGS_FILE:
            return self.data_root / "settings.json"
        return Path(self.SETTINGS_FILE)

    @property
    def api_prefix(self) -> str:
        return "/" + self.API_PREFIX.strip("/") if self.API_PREFIX.strip("/") else ""

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL.upper()

    @property
    def log_categories(self) -> list[str]:
        if not self.LOG_CATEGORIES:
            return []
        return [cat.strip() for cat in self.LOG_CATEGORIES.split(',')]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
