# nutrascore/sales_dashboard/queries.py
"""
SQL Queries and Data Loading for the Sales Dashboard

Handles all reads from the relational store:
- Period resolution (explicit -> latest KPI period -> latest salespeople period)
- KPI snapshots, salesperson snapshots, daily sales
- Seller profiles, sale records, billing entries, seller targets, roles
- Seller performance for a period (profiles + aggregated sale records)

Each read exists twice:
- fetch_*: returns a QueryResult tagged ok / empty / failed(reason)
- get_*:   collapses the result to [] / None and logs failures

Module-level loaders wrap the get_* methods with @st.cache_data; call
invalidate() after a successful write.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import streamlit as st
from sqlalchemy import text

from ..config import config
from ..db import get_db_engine
from .constants import DEFAULT_CACHE_TTL_SECONDS
from .metrics import DashboardMetrics
from .models import (
    BillingEntry,
    BillingSummary,
    DailySale,
    KPISnapshot,
    QueryResult,
    SaleRecord,
    SalespersonPerformance,
    SalespersonSnapshot,
    SellerProfile,
    SellerTarget,
    UserRole,
    validate_rows,
)
from .periods import current_period, is_valid_period, period_bounds, previous_period

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = config.get_app_setting("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)

# Tables checked, in order, when no period is given
PERIOD_SOURCES = ('kpis', 'salespeople')

SELLER_PROFILE_COLUMNS = """
    id, name, email, status, photo_url,
    created_by, created_at, updated_by, updated_at
"""

SALE_RECORD_COLUMNS = """
    id, salesperson_id, amount, sale_date, is_new_customer,
    order_number, customer_name,
    created_by, created_at, updated_by, updated_at
"""

BILLING_ENTRY_COLUMNS = """
    id, entry_date, month_year, released_amount, atr_amount, notes,
    created_by, created_at, updated_by, updated_at
"""

SELLER_TARGET_COLUMNS = """
    id, seller_id, month_year, goal_value, challenge_value, mega_goal_value,
    created_by, created_at, updated_by, updated_at
"""


class DashboardQueries:
    """
    Data loading class for the sales dashboard.

    Usage:
        queries = DashboardQueries()

        period = queries.resolve_active_period()
        kpis = queries.get_kpis(period)
        ranking = queries.get_salespeople(period)

        result = queries.fetch_daily_sales(period)
        if result.is_failed:
            ...
    """

    def __init__(self, engine=None):
        self._engine = engine

    @property
    def engine(self):
        """Lazy load database engine."""
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # PERIOD RESOLUTION
    # =========================================================================

    def resolve_active_period(self, period: Optional[str] = None) -> Optional[str]:
        """
        Resolve the period a read should be scoped to.

        An explicit period is returned verbatim. Otherwise the latest
        ``month_year`` of the KPI table is used, then the latest of the
        salespeople table. A failing tier is logged and the next one is
        tried. Returns None when nothing resolves; never raises.
        """
        if period:
            return period

        for table in PERIOD_SOURCES:
            result = self._execute_query(
                f"SELECT month_year FROM {table} ORDER BY month_year DESC LIMIT 1",
                {},
                f"latest_{table}_period"
            )
            if result.is_ok and result.first().get('month_year'):
                return result.first()['month_year']
            if result.is_failed:
                logger.warning(f"Period lookup on {table} failed, trying next source")

        logger.info("No period available in kpis or salespeople")
        return None

    # =========================================================================
    # KPI / SALESPEOPLE / DAILY SALES
    # =========================================================================

    def fetch_kpis(self, period: Optional[str] = None) -> QueryResult[KPISnapshot]:
        resolved = self.resolve_active_period(period)
        if not resolved:
            return QueryResult.empty()

        query = """
            SELECT month_year, total_sold, total_goal, total_clients,
                   new_clients, global_avg_ticket
            FROM kpis
            WHERE month_year = :period
            LIMIT 1
        """
        return self._fetch_rows(KPISnapshot, query, {'period': resolved}, 'kpis')

    def get_kpis(self, period: Optional[str] = None) -> Optional[KPISnapshot]:
        """KPI snapshot for the period, None when unavailable."""
        return self._first(self.fetch_kpis(period), 'kpis')

    def fetch_salespeople(self, period: Optional[str] = None) -> QueryResult[SalespersonSnapshot]:
        resolved = self.resolve_active_period(period)
        if not resolved:
            return QueryResult.empty()

        query = """
            SELECT id, month_year, name, sold, goal, challenge, mega,
                   clients, new_clients, avg_ticket, photo_url
            FROM salespeople
            WHERE month_year = :period
        """
        return self._fetch_rows(SalespersonSnapshot, query, {'period': resolved}, 'salespeople')

    def get_salespeople(self, period: Optional[str] = None) -> List[SalespersonSnapshot]:
        """Salesperson rows of the period in store order."""
        return self._rows(self.fetch_salespeople(period), 'salespeople')

    def fetch_daily_sales(self, period: Optional[str] = None) -> QueryResult[DailySale]:
        resolved = self.resolve_active_period(period)
        if not resolved:
            return QueryResult.empty()

        query = """
            SELECT date, sales, goal
            FROM daily_sales
            WHERE month_year = :period
            ORDER BY date ASC
        """
        return self._fetch_rows(DailySale, query, {'period': resolved}, 'daily_sales')

    def get_daily_sales(self, period: Optional[str] = None) -> List[DailySale]:
        """Daily sales of the period ordered by date."""
        return self._rows(self.fetch_daily_sales(period), 'daily_sales')

    def get_daily_sales_comparison(
        self,
        period: Optional[str] = None
    ) -> Tuple[List[DailySale], List[DailySale]]:
        """
        Daily series for the resolved period and the month before it.

        The two reads are independent: a failure of one leaves the other intact.

        Returns:
            (current series, previous series)
        """
        resolved = self.resolve_active_period(period)
        if not resolved:
            return [], []

        current = self.get_daily_sales(resolved)
        if not is_valid_period(resolved):
            logger.warning(f"Cannot derive previous period from '{resolved}'")
            return current, []

        return current, self.get_daily_sales(previous_period(resolved))

    # =========================================================================
    # SELLER PROFILES
    # =========================================================================

    def fetch_all_seller_profiles(self) -> QueryResult[SellerProfile]:
        query = f"SELECT {SELLER_PROFILE_COLUMNS} FROM seller_profiles ORDER BY name ASC"
        return self._fetch_rows(SellerProfile, query, {}, 'seller_profiles')

    def get_all_seller_profiles(self) -> List[SellerProfile]:
        return self._rows(self.fetch_all_seller_profiles(), 'seller_profiles')

    def fetch_seller_profile(self, seller_id: str) -> QueryResult[SellerProfile]:
        query = f"SELECT {SELLER_PROFILE_COLUMNS} FROM seller_profiles WHERE id = :id"
        return self._fetch_rows(SellerProfile, query, {'id': seller_id}, 'seller_profile')

    def get_seller_profile(self, seller_id: str) -> Optional[SellerProfile]:
        return self._first(self.fetch_seller_profile(seller_id), 'seller_profile')

    # =========================================================================
    # SALE RECORDS
    # =========================================================================

    def fetch_sale_record_by_id(self, sale_id: str) -> QueryResult[SaleRecord]:
        query = f"SELECT {SALE_RECORD_COLUMNS} FROM sale_records WHERE id = :id"
        return self._fetch_rows(SaleRecord, query, {'id': sale_id}, 'sale_record')

    def get_sale_record_by_id(self, sale_id: str) -> Optional[SaleRecord]:
        return self._first(self.fetch_sale_record_by_id(sale_id), 'sale_record')

    def fetch_sale_records(
        self,
        period: Optional[str] = None,
        seller_id: Optional[str] = None
    ) -> QueryResult[SaleRecord]:
        """
        Sale records, newest first.

        Args:
            period: Restrict to sales dated inside this month (all when None)
            seller_id: Restrict to one salesperson
        """
        query = f"SELECT {SALE_RECORD_COLUMNS} FROM sale_records WHERE 1 = 1"
        params: Dict[str, Any] = {}

        if period:
            if not is_valid_period(period):
                return QueryResult.failed(f"Invalid period '{period}'")
            start, end = period_bounds(period)
            query += " AND sale_date >= :start_date AND sale_date < :end_date"
            params['start_date'] = start.isoformat()
            params['end_date'] = end.isoformat()

        if seller_id:
            query += " AND salesperson_id = :seller_id"
            params['seller_id'] = seller_id

        query += " ORDER BY sale_date DESC, created_at DESC"

        return self._fetch_rows(SaleRecord, query, params, 'sale_records')

    def get_sale_records(
        self,
        period: Optional[str] = None,
        seller_id: Optional[str] = None
    ) -> List[SaleRecord]:
        return self._rows(self.fetch_sale_records(period, seller_id), 'sale_records')

    # =========================================================================
    # SELLER PERFORMANCE
    # =========================================================================

    def fetch_salespeople_with_performance(
        self,
        period: Optional[str] = None
    ) -> QueryResult[SalespersonPerformance]:
        """
        Seller profiles joined with their sale aggregates for ``period``
        (current calendar month when None), the previous month, and the
        period's targets.

        Fails only when the profile read fails; a failing sales or target
        read degrades to zero totals / no targets.
        """
        period = period or current_period()
        if not is_valid_period(period):
            return QueryResult.failed(f"Invalid period '{period}'")

        profiles = self.fetch_all_seller_profiles()
        if not profiles.is_ok:
            return QueryResult(profiles.status, reason=profiles.reason)

        current_sales = self.get_sale_records(period)
        previous_sales = self.get_sale_records(previous_period(period))
        targets = self.get_seller_targets(period)

        performance = DashboardMetrics.build_salesperson_performance(
            profiles.rows, current_sales, previous_sales, targets, period
        )
        return QueryResult.of(performance)

    def get_salespeople_with_performance(
        self,
        period: Optional[str] = None
    ) -> List[SalespersonPerformance]:
        return self._rows(self.fetch_salespeople_with_performance(period), 'salespeople_with_performance')

    # =========================================================================
    # BILLING
    # =========================================================================

    def fetch_all_billing_entries(self) -> QueryResult[BillingEntry]:
        query = f"""
            SELECT {BILLING_ENTRY_COLUMNS}
            FROM billing_entries
            ORDER BY entry_date DESC, created_at DESC
        """
        return self._fetch_rows(BillingEntry, query, {}, 'billing_entries')

    def get_all_billing_entries(self) -> List[BillingEntry]:
        return self._rows(self.fetch_all_billing_entries(), 'billing_entries')

    def fetch_billing_entries(self, period: str) -> QueryResult[BillingEntry]:
        query = f"""
            SELECT {BILLING_ENTRY_COLUMNS}
            FROM billing_entries
            WHERE month_year = :period
            ORDER BY entry_date ASC
        """
        return self._fetch_rows(BillingEntry, query, {'period': period}, 'billing_entries')

    def fetch_billing_summary(self, period: Optional[str] = None) -> QueryResult[BillingSummary]:
        """Billing statement of ``period`` (current calendar month when None)."""
        period = period or current_period()

        entries = self.fetch_billing_entries(period)
        if not entries.is_ok:
            return QueryResult(entries.status, reason=entries.reason)

        return QueryResult.of([DashboardMetrics.summarize_billing(entries.rows, period)])

    def get_billing_summary(self, period: Optional[str] = None) -> Optional[BillingSummary]:
        return self._first(self.fetch_billing_summary(period), 'billing_summary')

    # =========================================================================
    # TARGETS / ROLES
    # =========================================================================

    def fetch_seller_target(self, seller_id: str, period: str) -> QueryResult[SellerTarget]:
        query = f"""
            SELECT {SELLER_TARGET_COLUMNS}
            FROM seller_targets
            WHERE seller_id = :seller_id AND month_year = :period
            LIMIT 1
        """
        params = {'seller_id': seller_id, 'period': period}
        return self._fetch_rows(SellerTarget, query, params, 'seller_target')

    def get_seller_target(self, seller_id: str, period: str) -> Optional[SellerTarget]:
        return self._first(self.fetch_seller_target(seller_id, period), 'seller_target')

    def fetch_seller_targets(self, period: str) -> QueryResult[SellerTarget]:
        query = f"""
            SELECT {SELLER_TARGET_COLUMNS}
            FROM seller_targets
            WHERE month_year = :period
        """
        return self._fetch_rows(SellerTarget, query, {'period': period}, 'seller_targets')

    def get_seller_targets(self, period: str) -> List[SellerTarget]:
        return self._rows(self.fetch_seller_targets(period), 'seller_targets')

    def fetch_user_role(self, user_id: str) -> QueryResult[UserRole]:
        query = "SELECT user_id, role FROM user_roles WHERE user_id = :user_id"
        return self._fetch_rows(UserRole, query, {'user_id': user_id}, 'user_role')

    def get_user_role(self, user_id: str) -> Optional[UserRole]:
        return self._first(self.fetch_user_role(user_id), 'user_role')

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _execute_query(
        self,
        query: str,
        params: dict,
        query_name: str = "query"
    ) -> QueryResult[Dict[str, Any]]:
        """
        Execute SQL query and return its records.

        Args:
            query: SQL query string
            params: Query parameters
            query_name: Name for logging

        Returns:
            QueryResult of plain dicts (SQL NULL / NaN mapped to None)
        """
        try:
            logger.debug(f"Executing {query_name}")
            df = pd.read_sql(text(query), self.engine, params=params)
            logger.debug(f"{query_name} returned {len(df)} rows")
        except Exception as e:
            logger.error(f"Error executing {query_name}: {e}")
            return QueryResult.failed(str(e))

        df = df.astype(object).where(pd.notna(df), None)
        return QueryResult.of(df.to_dict('records'))

    def _fetch_rows(self, model, query: str, params: dict, query_name: str) -> QueryResult:
        """Execute a query and validate its records into ``model``."""
        result = self._execute_query(query, params, query_name)
        if not result.is_ok:
            return result
        return QueryResult.of(validate_rows(model, result.rows, query_name))

    @staticmethod
    def _rows(result: QueryResult, name: str) -> list:
        if result.is_failed:
            logger.warning(f"{name} unavailable, returning empty list: {result.reason}")
        return list(result.rows)

    @staticmethod
    def _first(result: QueryResult, name: str):
        if result.is_failed:
            logger.warning(f"{name} unavailable, returning None: {result.reason}")
        return result.first()


# =============================================================================
# CACHED QUERY FUNCTIONS (Module-level for st.cache_data)
# =============================================================================

@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_active_period(period: Optional[str] = None) -> Optional[str]:
    return DashboardQueries().resolve_active_period(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_kpis(period: Optional[str] = None) -> Optional[KPISnapshot]:
    return DashboardQueries().get_kpis(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_salespeople(period: Optional[str] = None) -> List[SalespersonSnapshot]:
    return DashboardQueries().get_salespeople(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_daily_sales_comparison(period: Optional[str] = None) -> Tuple[List[DailySale], List[DailySale]]:
    return DashboardQueries().get_daily_sales_comparison(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_seller_profiles() -> List[SellerProfile]:
    return DashboardQueries().get_all_seller_profiles()


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_sale_records(period: Optional[str] = None, seller_id: Optional[str] = None) -> List[SaleRecord]:
    return DashboardQueries().get_sale_records(period, seller_id)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_salespeople_with_performance(period: Optional[str] = None) -> List[SalespersonPerformance]:
    return DashboardQueries().get_salespeople_with_performance(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_billing_entries() -> List[BillingEntry]:
    return DashboardQueries().get_all_billing_entries()


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_billing_summary(period: Optional[str] = None) -> Optional[BillingSummary]:
    return DashboardQueries().get_billing_summary(period)


@st.cache_data(ttl=CACHE_TTL_SECONDS)
def load_seller_targets(period: str) -> List[SellerTarget]:
    return DashboardQueries().get_seller_targets(period)


# Loaders whose results depend on each written entity
_LOADERS_BY_ENTITY = {
    'seller_profiles': (load_seller_profiles, load_salespeople_with_performance),
    'sale_records': (load_sale_records, load_salespeople_with_performance),
    'billing_entries': (load_billing_entries, load_billing_summary),
    'seller_targets': (load_seller_targets, load_salespeople_with_performance),
    'snapshots': (load_active_period, load_kpis, load_salespeople, load_daily_sales_comparison),
}


def invalidate(*entities: str):
    """
    Clear cached loaders after a successful write.

    Args:
        entities: Keys of _LOADERS_BY_ENTITY; all loaders when omitted
    """
    keys = entities or tuple(_LOADERS_BY_ENTITY)
    cleared = set()
    for key in keys:
        for loader in _LOADERS_BY_ENTITY.get(key, ()):
            if id(loader) not in cleared:
                loader.clear()
                cleared.add(id(loader))
    logger.debug(f"Invalidated cached loaders for: {', '.join(keys)}")
