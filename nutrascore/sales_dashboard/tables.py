# nutrascore/sales_dashboard/tables.py
"""
Table definitions for the Sales Dashboard store.

Plain DDL kept portable between MySQL and SQLite (tests). Identifiers are
UUID strings generated by the application; audit timestamps are ISO-8601
strings stamped by the data-access layer.
"""

import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

TABLE_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS kpis (
        id VARCHAR(36) PRIMARY KEY,
        month_year VARCHAR(7) NOT NULL UNIQUE,
        total_sold DOUBLE NOT NULL DEFAULT 0,
        total_goal DOUBLE NOT NULL DEFAULT 0,
        total_clients INTEGER NOT NULL DEFAULT 0,
        new_clients INTEGER NOT NULL DEFAULT 0,
        global_avg_ticket DOUBLE NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS salespeople (
        id VARCHAR(36) PRIMARY KEY,
        month_year VARCHAR(7) NOT NULL,
        name VARCHAR(255) NOT NULL,
        sold DOUBLE NOT NULL DEFAULT 0,
        goal DOUBLE NOT NULL DEFAULT 0,
        challenge DOUBLE NOT NULL DEFAULT 0,
        mega DOUBLE NOT NULL DEFAULT 0,
        clients INTEGER NOT NULL DEFAULT 0,
        new_clients INTEGER NOT NULL DEFAULT 0,
        avg_ticket DOUBLE NOT NULL DEFAULT 0,
        photo_url VARCHAR(500)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_sales (
        id VARCHAR(36) PRIMARY KEY,
        month_year VARCHAR(7) NOT NULL,
        date VARCHAR(10) NOT NULL,
        sales DOUBLE NOT NULL DEFAULT 0,
        goal DOUBLE NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS seller_profiles (
        id VARCHAR(36) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        email VARCHAR(255) NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        photo_url VARCHAR(500),
        created_by VARCHAR(36),
        created_at VARCHAR(40),
        updated_by VARCHAR(36),
        updated_at VARCHAR(40)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sale_records (
        id VARCHAR(36) PRIMARY KEY,
        salesperson_id VARCHAR(36) NOT NULL,
        amount DOUBLE NOT NULL,
        sale_date VARCHAR(10) NOT NULL,
        is_new_customer BOOLEAN NOT NULL DEFAULT 0,
        order_number VARCHAR(100) NOT NULL,
        customer_name VARCHAR(255),
        created_by VARCHAR(36),
        created_at VARCHAR(40),
        updated_by VARCHAR(36),
        updated_at VARCHAR(40)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS billing_entries (
        id VARCHAR(36) PRIMARY KEY,
        entry_date VARCHAR(10) NOT NULL,
        month_year VARCHAR(7) NOT NULL,
        released_amount DOUBLE NOT NULL DEFAULT 0,
        atr_amount DOUBLE NOT NULL DEFAULT 0,
        notes TEXT,
        created_by VARCHAR(36),
        created_at VARCHAR(40),
        updated_by VARCHAR(36),
        updated_at VARCHAR(40)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS seller_targets (
        id VARCHAR(36) PRIMARY KEY,
        seller_id VARCHAR(36) NOT NULL,
        month_year VARCHAR(7) NOT NULL,
        goal_value DOUBLE NOT NULL DEFAULT 0,
        challenge_value DOUBLE NOT NULL DEFAULT 0,
        mega_goal_value DOUBLE NOT NULL DEFAULT 0,
        created_by VARCHAR(36),
        created_at VARCHAR(40),
        updated_by VARCHAR(36),
        updated_at VARCHAR(40),
        UNIQUE (seller_id, month_year)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS history_log (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36),
        user_email VARCHAR(255),
        action_type VARCHAR(20) NOT NULL,
        record_type VARCHAR(50) NOT NULL,
        record_id VARCHAR(36),
        details TEXT,
        created_at VARCHAR(40)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(36) PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash VARCHAR(64) NOT NULL,
        password_salt VARCHAR(64) NOT NULL,
        full_name VARCHAR(255),
        is_active BOOLEAN NOT NULL DEFAULT 1,
        created_at VARCHAR(40),
        last_login VARCHAR(40)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        user_id VARCHAR(36) PRIMARY KEY,
        role VARCHAR(20) NOT NULL
    )
    """,
]


def create_tables(engine: Engine) -> None:
    """Create every dashboard table that does not exist yet."""
    with engine.begin() as conn:
        for statement in TABLE_STATEMENTS:
            conn.execute(text(statement))
    logger.info(f"✅ Dashboard tables ready ({len(TABLE_STATEMENTS)} tables)")
