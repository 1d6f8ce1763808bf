"""
Configuration for the alarm clock web host
Wraps the engine configuration with the HTTP server settings
"""

import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

from alarm_engine.config import AlarmEngineConfig

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
    """Configuration for the web host and the engine it runs"""

    engine: AlarmEngineConfig
    host: str
    port: int
    title: str

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables"""
        engine = AlarmEngineConfig.from_env()
        return cls(
            engine=engine,
            host=os.environ.get("ALARM_HOST", "127.0.0.1"),
            port=int(os.environ.get("ALARM_PORT", "8080")),
            title=os.environ.get("ALARM_APP_TITLE", "Alarm Clock")
        )

    def ensure_data_dir(self) -> None:
        """Create the data directory for the file-backed store"""
        if self.engine.storage_backend != "file":
            return
        directory = os.path.dirname(os.path.abspath(self.engine.store_path))
        os.makedirs(directory, exist_ok=True)
        logger.debug(f"Using alarm store at {self.engine.store_path}")


def load_app_config() -> AppConfig:
    """Load web host configuration"""
    config = AppConfig.from_env()
    config.ensure_data_dir()
    return config
