# nutrascore/auth.py
"""
Authentication for the NutraScore dashboard

Version: 1.0.0
Features:
- SHA256 + salt password hashing over the users table
- Sign in / sign up / sign out with session timeout
- Auth state change notifications (subscribe / unsubscribe)
- AuthSession: per-browser-session user + role with start/close lifecycle
"""

import hashlib
import logging
import re
import secrets
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Tuple

import streamlit as st
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .config import config
from .db import get_db_engine
from .sales_dashboard.constants import ADMIN_ROLES
from .sales_dashboard.queries import DashboardQueries

logger = logging.getLogger(__name__)

EVENT_SIGNED_IN = 'SIGNED_IN'
EVENT_SIGNED_OUT = 'SIGNED_OUT'

MIN_PASSWORD_LENGTH = 6

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AUTH_KEYS = ['authenticated', 'user_id', 'user_email', 'user_fullname', 'login_time']

AuthListener = Callable[[str, Optional[Dict[str, Any]]], None]


@dataclass
class Subscription:
    """Handle returned by on_auth_state_change."""
    manager: 'AuthManager'
    listener: AuthListener

    def unsubscribe(self):
        self.manager._remove_listener(self.listener)


class AuthManager:
    """Authentication manager for the Streamlit app"""

    def __init__(self, engine=None, state: MutableMapping = None):
        self._engine = engine
        self._state = state
        self._listeners: List[AuthListener] = []
        self._listeners_lock = threading.Lock()
        self.session_timeout = timedelta(
            hours=config.get_app_setting("SESSION_TIMEOUT_HOURS", 8)
        )

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    @property
    def state(self) -> MutableMapping:
        return st.session_state if self._state is None else self._state

    # ==================== PASSWORD HASHING ====================

    def hash_password(self, password: str, salt: str = None) -> Tuple[str, str]:
        """
        Hash password with SHA256 + salt

        Returns:
            Tuple of (hash, salt)
        """
        if not salt:
            salt = secrets.token_hex(32)

        pwd_hash = hashlib.sha256((password + salt).encode()).hexdigest()
        return pwd_hash, salt

    def verify_password(self, password: str, stored_hash: str, salt: str) -> bool:
        pwd_hash, _ = self.hash_password(password, salt)
        return secrets.compare_digest(pwd_hash, stored_hash)

    # ==================== AUTHENTICATION ====================

    def sign_in(self, email: str, password: str) -> Tuple[bool, Dict[str, Any]]:
        """
        Authenticate against the users table and start the session.

        Returns:
            Tuple of (success, user_info or {"error": message})
        """
        email = (email or '').strip().lower()

        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    text("""
                        SELECT id, email, password_hash, password_salt, full_name, is_active
                        FROM users
                        WHERE email = :email
                    """),
                    {'email': email}
                ).mappings().first()
        except SQLAlchemyError as e:
            logger.error(f"Authentication error: {e}")
            return False, {"error": "Authentication failed. Please try again."}

        if not result:
            logger.warning(f"Login attempt for non-existent user: {email}")
            return False, {"error": "Invalid email or password"}

        user = dict(result)

        if not user['is_active']:
            logger.warning(f"Login attempt for inactive user: {email}")
            return False, {"error": "Account is inactive. Please contact administrator."}

        if not self.verify_password(password, user['password_hash'], user['password_salt']):
            logger.warning(f"Invalid password for user: {email}")
            return False, {"error": "Invalid email or password"}

        self._update_last_login(user['id'])

        user_info = {
            'id': user['id'],
            'email': user['email'],
            'full_name': user['full_name'] or user['email'],
            'login_time': datetime.now(),
        }
        self._login(user_info)

        logger.info(f"User {email} authenticated successfully")
        self._notify(EVENT_SIGNED_IN, self.get_current_user())
        return True, user_info

    def sign_up(self, email: str, password: str, full_name: str = None) -> Tuple[bool, Dict[str, Any]]:
        """
        Create an account. The new user still has to sign in.

        Returns:
            Tuple of (success, {"id", "email"} or {"error": message})
        """
        email = (email or '').strip().lower()

        if not EMAIL_PATTERN.match(email):
            return False, {"error": "Invalid email address"}
        if len(password or '') < MIN_PASSWORD_LENGTH:
            return False, {"error": f"Password must have at least {MIN_PASSWORD_LENGTH} characters"}

        pwd_hash, salt = self.hash_password(password)
        user_id = str(uuid.uuid4())

        try:
            with self.engine.begin() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM users WHERE email = :email"), {'email': email}
                ).first()
                if exists:
                    logger.warning(f"Sign up with existing email: {email}")
                    return False, {"error": "An account with this email already exists"}

                conn.execute(
                    text("""
                        INSERT INTO users (id, email, password_hash, password_salt, full_name, is_active, created_at)
                        VALUES (:id, :email, :password_hash, :password_salt, :full_name, :is_active, :created_at)
                    """),
                    {
                        'id': user_id,
                        'email': email,
                        'password_hash': pwd_hash,
                        'password_salt': salt,
                        'full_name': (full_name or '').strip() or None,
                        'is_active': True,
                        'created_at': datetime.now(timezone.utc).isoformat(),
                    }
                )
        except SQLAlchemyError as e:
            logger.error(f"Sign up error: {e}")
            return False, {"error": "Sign up failed. Please try again."}

        logger.info(f"✅ User account created: {email}")
        return True, {'id': user_id, 'email': email}

    def sign_out(self):
        """Clear user session and cache"""
        email = self.state.get('user_email', 'Unknown')

        for key in AUTH_KEYS:
            if key in self.state:
                del self.state[key]

        st.cache_data.clear()

        logger.info(f"User {email} logged out")
        self._notify(EVENT_SIGNED_OUT, None)

    def _update_last_login(self, user_id: str):
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    text("UPDATE users SET last_login = :now WHERE id = :user_id"),
                    {'now': datetime.now(timezone.utc).isoformat(), 'user_id': user_id}
                )
        except SQLAlchemyError as e:
            logger.warning(f"Could not update last_login: {e}")

    # ==================== SESSION MANAGEMENT ====================

    def _login(self, user_info: Dict[str, Any]):
        self.state['authenticated'] = True
        self.state['user_id'] = user_info['id']
        self.state['user_email'] = user_info['email']
        self.state['user_fullname'] = user_info['full_name']
        self.state['login_time'] = user_info['login_time']

    def check_session(self) -> bool:
        """Check if user session is valid and not expired"""
        if not self.state.get('authenticated'):
            return False

        login_time = self.state.get('login_time')
        if login_time and datetime.now() - login_time > self.session_timeout:
            logger.info(f"Session expired for user: {self.state.get('user_email')}")
            self.sign_out()
            return False

        return True

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Signed-in user of this browser session, None when signed out"""
        if not self.check_session():
            return None
        return {
            'id': self.state.get('user_id'),
            'email': self.state.get('user_email'),
            'full_name': self.state.get('user_fullname'),
        }

    def require_auth(self) -> bool:
        """
        Require authentication to access a page
        Use at the beginning of each protected page
        """
        if not self.check_session():
            st.warning("⚠️ Please login to access this page")
            st.stop()
            return False
        return True

    # ==================== STATE CHANGE NOTIFICATIONS ====================

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        """Call ``listener(event, user)`` on sign in / sign out."""
        with self._listeners_lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove_listener(self, listener: AuthListener):
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, event: str, user: Optional[Dict[str, Any]]):
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, user)
            except Exception as e:
                logger.error(f"Auth listener failed on {event}: {e}")


class AuthSession:
    """
    Current user and role of one browser session.

    Usage:
        session = get_auth_session()
        if session.is_admin:
            ...
    """

    def __init__(self, auth: AuthManager, role_lookup: Callable[[str], Optional[str]] = None):
        self.auth = auth
        self.role_lookup = role_lookup or _lookup_role
        self.user: Optional[Dict[str, Any]] = None
        self.role: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    def start(self) -> 'AuthSession':
        """Load the current user and role, then follow auth changes."""
        self._apply(self.auth.get_current_user())
        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_change)
        return self

    def close(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    @property
    def is_active(self) -> bool:
        return self._subscription is not None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    def require_admin(self):
        """Stop the page unless an admin or manager is signed in"""
        self.auth.require_auth()
        if not self.is_admin:
            st.error(f"🚫 Access denied. Required role: {', '.join(ADMIN_ROLES)}")
            st.stop()

    def _on_change(self, event: str, user: Optional[Dict[str, Any]]):
        logger.debug(f"Auth state change: {event}")
        self._apply(user)

    def _apply(self, user: Optional[Dict[str, Any]]):
        same_user = user and self.user and user['id'] == self.user['id']
        self.user = user
        if not same_user:
            self.role = self.role_lookup(user['id']) if user else None


def _lookup_role(user_id: str) -> Optional[str]:
    role = DashboardQueries().get_user_role(user_id)
    return role.role if role else None


def get_auth_session() -> AuthSession:
    """AuthSession of the current browser session, refreshed on every script run"""
    if 'auth_session' not in st.session_state:
        st.session_state['auth_session'] = AuthSession(AuthManager())
    return st.session_state['auth_session'].start()


# ==================== MODULE EXPORTS ====================

__all__ = [
    'AuthManager',
    'AuthSession',
    'Subscription',
    'get_auth_session',
]
