"""
config.py
Environment-driven settings (.env supported) and logging setup.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


@dataclass
class StorageConfig:
    """Record store + local key-value store locations"""
    db_file: Path
    local_db_file: Path

    def validate(self) -> bool:
        return bool(str(self.db_file) and str(self.local_db_file)) and self.db_file != self.local_db_file


@dataclass
class AuthConfig:
    """The two static access secrets (owner / partner)"""
    owner_password: str
    partner_password: str
    bcrypt_rounds: int = 12

    def validate(self) -> bool:
        return bool(self.owner_password and self.partner_password) and self.owner_password != self.partner_password


@dataclass
class SystemConfig:
    log_level: str = "INFO"
    timezone: str = "America/Sao_Paulo"
    debug_mode: bool = False

    def validate(self) -> bool:
        return self.log_level.upper() in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config:
    """Application settings, read once from the environment."""

    def __init__(self, env_file: str | os.PathLike | None = None):
        self._load_environment(env_file)

        self.storage = StorageConfig(
            db_file=Path(os.getenv("IPTV_DB_FILE", str(BASE_DIR / "iptv.db"))),
            local_db_file=Path(os.getenv("IPTV_LOCAL_DB_FILE", str(BASE_DIR / "iptv_local.db"))),
        )

        self.auth = AuthConfig(
            owner_password=os.getenv("IPTV_OWNER_PASSWORD", "3str4NH$"),
            partner_password=os.getenv("IPTV_PARTNER_PASSWORD", "3str4NH@"),
            bcrypt_rounds=int(os.getenv("IPTV_BCRYPT_ROUNDS", "12")),
        )

        self.system = SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            timezone=os.getenv("TIMEZONE", "America/Sao_Paulo"),
            debug_mode=os.getenv("DEBUG_MODE", "false").lower() == "true",
        )

    def _load_environment(self, env_file) -> None:
        env_path = Path(env_file) if env_file else Path(".env")
        if env_path.exists():
            load_dotenv(env_path)
            logger.info("Loaded environment from %s", env_path)

    def validate_all(self) -> Dict[str, Any]:
        results: Dict[str, Any] = {
            "storage": self.storage.validate(),
            "auth": self.auth.validate(),
            "system": self.system.validate(),
            "errors": [],
            "warnings": [],
        }
        if not results["storage"]:
            results["errors"].append("Record store and local store must be two different files.")
        if not results["auth"]:
            results["errors"].append("Owner and partner passwords must be set and different.")
        if not results["system"]:
            results["warnings"].append(f"Unknown LOG_LEVEL '{self.system.log_level}', falling back to INFO.")
        if "IPTV_OWNER_PASSWORD" not in os.environ or "IPTV_PARTNER_PASSWORD" not in os.environ:
            results["warnings"].append("Using built-in default passwords.")
        results["valid"] = not results["errors"]
        return results

    def get_log_level(self) -> int:
        levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return levels.get(self.system.log_level.upper(), logging.INFO)

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=self.get_log_level(),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        if self.system.debug_mode:
            logging.getLogger().setLevel(logging.DEBUG)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
            )
            for handler in logging.root.handlers:
                handler.setFormatter(formatter)

        # streamlit's file watcher is noisy at DEBUG
        logging.getLogger("watchdog").setLevel(logging.WARNING)
        logger.info("Logging configured - level: %s", self.system.log_level)


settings = Config()
