"""Configuration management using Pydantic settings"""

import platform
import os
from pathlib import Path
from pydantic_settings import BaseSettings
from typing import Optional


APP_DIR_NAME = "HangulPath"


def get_default_storage_path() -> str:
    """
    Get OS-specific default storage path for the billing client.

    Returns:
        - macOS: ~/Library/Application Support/HangulPath
        - Linux: ~/.local/share/hangulpath
        - Windows: %APPDATA%/HangulPath
    """
    system = platform.system()
    home = Path.home()

    if system == "Darwin":  # macOS
        return str(home / "Library" / "Application Support" / APP_DIR_NAME)
    elif system == "Windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return str(Path(appdata) / APP_DIR_NAME)
        return str(home / "AppData" / "Roaming" / APP_DIR_NAME)
    else:  # Linux and others
        # Follow XDG Base Directory specification
        xdg_data = os.environ.get("XDG_DATA_HOME")
        if xdg_data:
            return str(Path(xdg_data) / APP_DIR_NAME.lower())
        return str(home / ".local" / "share" / APP_DIR_NAME.lower())


class Settings(BaseSettings):
    """Application settings"""

    # Backend REST API
    API_BASE_URL: str = "http://localhost:5000/api"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    AUTH_TOKEN: Optional[str] = None

    # Local device storage (AsyncStorage equivalent)
    STORAGE_DIR: str = get_default_storage_path()
    LOCAL_STORE_FILE: Optional[str] = None

    # Developer override for currency detection: INR or USD
    DEV_CURRENCY: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def model_post_init(self, __context) -> None:
        """Initialize derived paths after model creation"""
        if self.LOCAL_STORE_FILE is None:
            object.__setattr__(
                self, 'LOCAL_STORE_FILE', str(Path(self.STORAGE_DIR) / "local_storage.json")
            )

    def create_directories(self):
        """Create the storage directory"""
        Path(self.STORAGE_DIR).mkdir(parents=True, exist_ok=True)

    def get_storage_info(self) -> dict:
        """Get storage path information for diagnostics"""
        return {
            "storage_path": self.STORAGE_DIR,
            "local_store_file": self.LOCAL_STORE_FILE,
            "default_path": get_default_storage_path(),
            "is_default": self.STORAGE_DIR == get_default_storage_path(),
            "platform": platform.system(),
        }


# Global settings instance
settings = Settings()
