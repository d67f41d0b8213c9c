# nutrascore/config.py
"""
Settings for the NutraScore dashboard

Version: 1.0.0
Features:
- Streamlit Cloud secrets (secrets.toml sections) or local .env, same keys
- Singleton Config, loaded once per process
- Typed containers for the relational store and avatar storage
- Feature flags (ENABLE_*)

secrets.toml layout:
    [DB_CONFIG]  host, port, user, password, database, driver, url
    [STORAGE]    ACCESS_KEY_ID, SECRET_ACCESS_KEY, REGION, BUCKET_NAME, PUBLIC_BASE_URL

.env equivalents:
    DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME, DB_DRIVER, DATABASE_URL
    AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, AWS_REGION,
    AVATAR_BUCKET_NAME, AVATAR_PUBLIC_BASE_URL
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)

DEFAULT_REGION = "sa-east-1"
DEFAULT_BUCKET = "seller-avatars"


def is_running_on_streamlit_cloud() -> bool:
    """True when a non-empty secrets.toml is available"""
    try:
        import streamlit as st
        return len(st.secrets) > 0
    except Exception:
        # st.secrets raises when no secrets file exists
        return False


@dataclass
class DatabaseConfig:
    host: str = ""
    port: int = 3306
    user: str = ""
    password: str = ""
    database: str = "nutrascore"
    driver: str = "mysql+pymysql"
    url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def is_configured(self) -> bool:
        return bool(self.url) or bool(self.host and self.user and self.password)


@dataclass
class StorageConfig:
    """Avatar bucket settings. Without a public base URL the regional S3 endpoint is used."""
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = DEFAULT_REGION
    bucket_name: str = DEFAULT_BUCKET
    public_base_url: Optional[str] = None

    def __post_init__(self):
        if not self.public_base_url:
            self.public_base_url = f"https://s3.{self.region}.amazonaws.com"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def is_configured(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)


class Config:
    """
    Process-wide settings.

    Usage:
        from nutrascore.config import config

        db = config.get_db_config()
        bucket = config.get_storage_config()['bucket_name']
        ttl = config.get_app_setting("CACHE_TTL_SECONDS", 300)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        if not self.is_cloud:
            self._load_dotenv()

        self._db_config = self._read_db_config()
        self._storage_config = self._read_storage_config()
        self._app_config = self._read_app_config()

        self._log_config_status()
        self._initialized = True

    # ==================== SOURCES ====================

    def _load_dotenv(self):
        for env_path in (Path.cwd() / ".env", Path(__file__).parent.parent / ".env"):
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                return

    def _read(self, section: str, secret_key: str, env_name: str, default: Any = None) -> Any:
        """One setting from secrets.toml[section][secret_key] or from the environment"""
        if self.is_cloud:
            import streamlit as st
            return st.secrets.get(section, {}).get(secret_key, default)
        return os.getenv(env_name, default)

    def _read_db_config(self) -> DatabaseConfig:
        db = DatabaseConfig(
            host=self._read("DB_CONFIG", "host", "DB_HOST", ""),
            port=int(self._read("DB_CONFIG", "port", "DB_PORT", 3306)),
            user=self._read("DB_CONFIG", "user", "DB_USER", ""),
            password=self._read("DB_CONFIG", "password", "DB_PASSWORD", ""),
            database=self._read("DB_CONFIG", "database", "DB_NAME", "nutrascore"),
            driver=self._read("DB_CONFIG", "driver", "DB_DRIVER", "mysql+pymysql"),
            url=self._read("DB_CONFIG", "url", "DATABASE_URL"),
        )
        if not db.is_configured():
            logger.warning("Missing database configuration. Please check .env or secrets.toml.")
        return db

    def _read_storage_config(self) -> StorageConfig:
        return StorageConfig(
            access_key_id=self._read("STORAGE", "ACCESS_KEY_ID", "AWS_ACCESS_KEY_ID"),
            secret_access_key=self._read("STORAGE", "SECRET_ACCESS_KEY", "AWS_SECRET_ACCESS_KEY"),
            region=self._read("STORAGE", "REGION", "AWS_REGION", DEFAULT_REGION),
            bucket_name=self._read("STORAGE", "BUCKET_NAME", "AVATAR_BUCKET_NAME", DEFAULT_BUCKET),
            public_base_url=self._read("STORAGE", "PUBLIC_BASE_URL", "AVATAR_PUBLIC_BASE_URL"),
        )

    def _read_app_config(self) -> Dict[str, Any]:
        """App settings always come from the environment"""
        def flag(name: str, default: str) -> bool:
            return os.getenv(name, default).lower() == "true"

        return {
            "SESSION_TIMEOUT_HOURS": int(os.getenv("SESSION_TIMEOUT_HOURS", "8")),
            "DB_POOL_SIZE": int(os.getenv("DB_POOL_SIZE", "5")),
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "3600")),
            "CACHE_TTL_SECONDS": int(os.getenv("CACHE_TTL_SECONDS", "300")),
            "ENABLE_HISTORY_LOG": flag("ENABLE_HISTORY_LOG", "true"),
        }

    def _log_config_status(self):
        logger.info("☁️ Running in STREAMLIT CLOUD" if self.is_cloud else "💻 Running in LOCAL environment")
        if self._db_config.url:
            logger.info("✅ Database: DATABASE_URL")
        elif self._db_config.is_configured():
            logger.info(f"✅ Database: {self._db_config.host}/{self._db_config.database}")
        else:
            logger.info("⚠️ Database: Not configured")
        logger.info(f"✅ Avatar storage: {'Configured' if self._storage_config.is_configured() else 'Not configured'}")

    # ==================== PUBLIC GETTERS ====================

    def get_db_config(self) -> Dict[str, Any]:
        return self._db_config.to_dict()

    def is_db_configured(self) -> bool:
        return self._db_config.is_configured()

    def get_storage_config(self) -> Dict[str, Any]:
        return self._storage_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        return self._app_config.get(key, default)

    def is_feature_enabled(self, feature: str) -> bool:
        """Feature flag ENABLE_<FEATURE>; unknown flags are on"""
        return self._app_config.get(f"ENABLE_{feature.upper()}", True)

    @property
    def app_config(self) -> Dict[str, Any]:
        return self._app_config.copy()


# ==================== SINGLETON INSTANCE ====================

config = Config()

APP_CONFIG = config.app_config

__all__ = [
    'config',
    'Config',
    'DatabaseConfig',
    'StorageConfig',
    'APP_CONFIG',
]
