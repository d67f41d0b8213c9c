# scripts/init_db.py
"""
Create the dashboard tables and, optionally, a first user with a role.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --email admin@empresa.com --password secret123 --role admin
"""

import argparse
import logging

from sqlalchemy import text

from nutrascore.auth import AuthManager
from nutrascore.db import get_db_engine
from nutrascore.sales_dashboard.constants import USER_ROLES
from nutrascore.sales_dashboard.tables import create_tables

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_user(engine, email: str, password: str, full_name: str = None, role: str = 'admin') -> bool:
    """Sign up an account and grant it ``role``"""
    auth = AuthManager(engine=engine, state={})
    success, result = auth.sign_up(email, password, full_name)
    if not success:
        logger.error(f"Account not created: {result['error']}")
        return False

    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO user_roles (user_id, role) VALUES (:user_id, :role)"),
            {'user_id': result['id'], 'role': role}
        )
    logger.info(f"✅ Account ready: {email} ({role})")
    return True


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument('--email')
    parser.add_argument('--password')
    parser.add_argument('--name')
    parser.add_argument('--role', choices=USER_ROLES, default='admin')
    args = parser.parse_args()

    engine = get_db_engine()
    create_tables(engine)

    if args.email:
        if not create_user(engine, args.email, args.password or '', args.name, args.role):
            raise SystemExit(1)


if __name__ == "__main__":
    main()
