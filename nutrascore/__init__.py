# nutrascore/__init__.py
"""
NutraScore Sales Dashboard

Shared infrastructure used by all pages:
- config: Configuration management (local .env + Streamlit Cloud secrets)
- db: Database engine with pooling
- storage: Seller avatar storage (S3)
- auth: Authentication and per-session auth state

Usage:
    from nutrascore import config, get_db_engine, get_auth_session
    from nutrascore.sales_dashboard import DashboardQueries, DashboardMetrics
"""

# Configuration
from .config import (
    config,
    Config,
    APP_CONFIG,
)

# Database
from .db import (
    get_db_engine,
    check_db_connection,
    reset_db_engine,
    get_connection_pool_status,
)

# Storage
from .storage import (
    SellerPhotoStorage,
    get_photo_storage,
    reset_photo_storage,
)

# Authentication
from .auth import (
    AuthManager,
    AuthSession,
    get_auth_session,
)

__all__ = [
    # Config
    'config',
    'Config',
    'APP_CONFIG',

    # Database
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
    'get_connection_pool_status',

    # Storage
    'SellerPhotoStorage',
    'get_photo_storage',
    'reset_photo_storage',

    # Auth
    'AuthManager',
    'AuthSession',
    'get_auth_session',
]

__version__ = '1.0.0'
