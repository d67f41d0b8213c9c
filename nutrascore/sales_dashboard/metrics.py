# nutrascore/sales_dashboard/metrics.py
"""
KPI Calculations for the Sales Dashboard

Pure functions, no I/O:
- Goal percentage (uncapped) and progress bar width (clamped)
- Period-over-period deltas
- Salesperson ranking (stable, descending)
- Customer mix, average ticket
- Daily series alignment for current vs previous month
- Seller performance rows and company monthly totals
- Per-seller tier progress and month-by-month totals
- Billing statement summary and split
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .constants import DAY_KEYS
from .periods import period_of
from .models import (
    BillingEntry,
    BillingSummary,
    DailySale,
    SaleRecord,
    SalespersonPerformance,
    SellerProfile,
    SellerTarget,
)

logger = logging.getLogger(__name__)


class DeltaKind(str, Enum):
    INFINITE_GROWTH = 'infinite_growth'
    NO_CHANGE = 'no_change'
    PERCENT = 'percent'


@dataclass(frozen=True)
class PeriodDelta:
    """Change of a figure against the previous period."""
    kind: DeltaKind
    percent: Optional[float] = None

    @property
    def is_positive(self) -> bool:
        if self.kind == DeltaKind.INFINITE_GROWTH:
            return True
        return (self.percent or 0) > 0

    def label(self) -> str:
        if self.kind == DeltaKind.INFINITE_GROWTH:
            return "+∞%"
        return f"{self.percent:+.1f}%"


@dataclass(frozen=True)
class CustomerMix:
    total: int
    new: int
    returning: int
    new_percentage: Optional[float]


def _value(row: Any, key: str, default: Any = 0):
    """Read ``key`` from a model or a dict row."""
    if isinstance(row, dict):
        value = row.get(key, default)
    else:
        value = getattr(row, key, default)
    return default if value is None else value


class DashboardMetrics:
    """
    KPI calculations for the sales dashboard.

    Usage:
        pct = DashboardMetrics.goal_percentage(sold, goal)
        ranking = DashboardMetrics.build_ranking(salespeople)
        delta = DashboardMetrics.period_delta(current_total, previous_total)
    """

    # =========================================================================
    # GOAL PROGRESS
    # =========================================================================

    @staticmethod
    def goal_percentage(sold: float, goal: float) -> Optional[float]:
        """
        Achievement against a goal, in percent.

        Not capped: 150 means 50% above goal. None when the goal is not
        defined (goal <= 0).
        """
        if goal is None or goal <= 0:
            return None
        return (sold or 0) / goal * 100

    @staticmethod
    def progress_bar_width(sold: float, goal: float) -> float:
        """Visual width of a progress bar, clamped to [0, 100]; 0 without a goal."""
        pct = DashboardMetrics.goal_percentage(sold, goal)
        if pct is None:
            return 0.0
        return float(np.clip(pct, 0, 100))

    @staticmethod
    def goal_status(sold: float, goal: float) -> str:
        """One of not_defined / achieved / in_progress / not_started."""
        if goal is None or goal <= 0:
            return 'not_defined'
        sold = sold or 0
        if sold >= goal:
            return 'achieved'
        if sold > 0:
            return 'in_progress'
        return 'not_started'

    @staticmethod
    def achievement_tier(
        sold: float,
        goal: Optional[float],
        challenge: Optional[float] = None,
        mega: Optional[float] = None
    ) -> str:
        """Highest defined target reached: mega / challenge / goal / below."""
        sold = sold or 0
        for tier, target in (('mega', mega), ('challenge', challenge), ('goal', goal)):
            if target and target > 0 and sold >= target:
                return tier
        return 'below'

    # =========================================================================
    # DELTAS
    # =========================================================================

    @staticmethod
    def period_delta(current: float, previous: float) -> PeriodDelta:
        """
        Change from the previous period.

        previous == 0 and current > 0 is infinite growth; previous == 0 and
        current <= 0 is no change (0%).
        """
        current = current or 0
        previous = previous or 0

        if previous == 0:
            if current > 0:
                return PeriodDelta(DeltaKind.INFINITE_GROWTH)
            return PeriodDelta(DeltaKind.NO_CHANGE, 0.0)

        return PeriodDelta(DeltaKind.PERCENT, (current - previous) / abs(previous) * 100)

    # =========================================================================
    # RANKING
    # =========================================================================

    @staticmethod
    def rank_salespeople(rows: Iterable[Any], key: str = 'sold') -> List[Any]:
        """Rows sorted by ``key`` descending; ties keep their input order."""
        return sorted(rows, key=lambda row: _value(row, key), reverse=True)

    @staticmethod
    def build_ranking(
        rows: Iterable[Any],
        value_key: str = 'sold',
        goal_key: str = 'goal',
        challenge_key: str = 'challenge',
        mega_key: str = 'mega'
    ) -> pd.DataFrame:
        """
        Ranking table for display.

        Works on salesperson snapshots (defaults) and on performance rows
        (pass ``value_key='total_sales_amount'``, ``goal_key='current_goal_value'``...).
        """
        columns = ['rank', 'name', 'photo_url', 'sold', 'goal', 'challenge', 'mega',
                   'goal_percentage', 'progress', 'tier']

        ranked = DashboardMetrics.rank_salespeople(rows, value_key)
        if not ranked:
            return pd.DataFrame(columns=columns)

        records = []
        for position, row in enumerate(ranked, start=1):
            sold = float(_value(row, value_key))
            goal = float(_value(row, goal_key))
            challenge = float(_value(row, challenge_key))
            mega = float(_value(row, mega_key))
            records.append({
                'rank': position,
                'name': _value(row, 'name', ''),
                'photo_url': _value(row, 'photo_url', None),
                'sold': sold,
                'goal': goal,
                'challenge': challenge,
                'mega': mega,
                'goal_percentage': DashboardMetrics.goal_percentage(sold, goal),
                'progress': DashboardMetrics.progress_bar_width(sold, goal),
                'tier': DashboardMetrics.achievement_tier(sold, goal, challenge, mega),
            })

        return pd.DataFrame(records, columns=columns)

    # =========================================================================
    # CUSTOMERS / TICKET
    # =========================================================================

    @staticmethod
    def customer_mix(total_clients: int, new_clients: int) -> CustomerMix:
        """New vs returning customers; returning is never negative."""
        total = max(int(total_clients or 0), 0)
        new = max(int(new_clients or 0), 0)
        returning = max(total - new, 0)
        new_percentage = new / total * 100 if total > 0 else None
        return CustomerMix(total=total, new=new, returning=returning, new_percentage=new_percentage)

    @staticmethod
    def average_ticket(total: float, count: int) -> float:
        if not count:
            return 0.0
        return (total or 0) / count

    # =========================================================================
    # DAILY SERIES
    # =========================================================================

    @staticmethod
    def align_daily_series(
        current: Sequence[DailySale],
        previous: Sequence[DailySale]
    ) -> List[Dict[str, Any]]:
        """
        Align two monthly series by day of month.

        Returns one row per day key ('01'..'31') present in either series:
        {'day', 'current', 'previous', 'goal'}. A day missing from a series
        is None, never 0.
        """
        def by_day(series):
            return {f"{sale.date.day:02d}": sale for sale in series}

        current_days = by_day(current)
        previous_days = by_day(previous)

        rows = []
        for day in DAY_KEYS:
            if day not in current_days and day not in previous_days:
                continue
            cur = current_days.get(day)
            prev = previous_days.get(day)
            rows.append({
                'day': day,
                'current': cur.sales if cur else None,
                'previous': prev.sales if prev else None,
                'goal': cur.goal if cur else None,
            })
        return rows

    # =========================================================================
    # SELLER PERFORMANCE
    # =========================================================================

    @staticmethod
    def aggregate_sales(records: Iterable[SaleRecord]) -> Dict[str, Dict[str, float]]:
        """Totals per salesperson: {'total', 'count', 'new'}."""
        df = pd.DataFrame(
            [
                {
                    'salesperson_id': r.salesperson_id,
                    'amount': r.amount,
                    'is_new_customer': int(r.is_new_customer),
                }
                for r in records
            ],
            columns=['salesperson_id', 'amount', 'is_new_customer']
        )
        if df.empty:
            return {}

        grouped = df.groupby('salesperson_id').agg(
            total=('amount', 'sum'),
            count=('amount', 'size'),
            new=('is_new_customer', 'sum'),
        )

        return {
            seller_id: {
                'total': float(row['total']),
                'count': int(row['count']),
                'new': int(row['new']),
            }
            for seller_id, row in grouped.iterrows()
        }

    @staticmethod
    def build_salesperson_performance(
        profiles: Iterable[SellerProfile],
        current_sales: Iterable[SaleRecord],
        previous_sales: Iterable[SaleRecord],
        targets: Iterable[SellerTarget],
        period: str
    ) -> List[SalespersonPerformance]:
        """
        Join profiles with sale aggregates for ``period``, the previous
        period, and the period's targets. Profiles without sales get zeros;
        profiles without targets get None target values.
        """
        current = DashboardMetrics.aggregate_sales(current_sales)
        previous = DashboardMetrics.aggregate_sales(previous_sales)
        targets_by_seller = {t.seller_id: t for t in targets}

        empty = {'total': 0.0, 'count': 0, 'new': 0}
        performance = []
        for profile in profiles:
            cur = current.get(profile.id, empty)
            prev = previous.get(profile.id, empty)
            target = targets_by_seller.get(profile.id)

            performance.append(SalespersonPerformance(
                id=profile.id,
                name=profile.name,
                email=profile.email,
                status=profile.status,
                photo_url=profile.photo_url,
                month_year=period,
                total_sales_amount=cur['total'],
                number_of_sales=cur['count'],
                new_customers=cur['new'],
                previous_period_total_sales_amount=prev['total'],
                previous_period_number_of_sales=prev['count'],
                current_goal_value=target.goal_value if target else None,
                current_challenge_value=target.challenge_value if target else None,
                current_mega_goal_value=target.mega_goal_value if target else None,
            ))

        return performance

    @staticmethod
    def company_monthly_metrics(performance: Sequence[SalespersonPerformance]) -> Dict[str, Any]:
        """Company totals for a period built from seller performance rows."""
        if not performance:
            return {
                'total_sales': 0.0,
                'previous_total_sales': 0.0,
                'number_of_sales': 0,
                'new_customers': 0,
                'company_goal': 0.0,
                'company_challenge_total': 0.0,
                'company_mega_total': 0.0,
                'goal_percentage': None,
                'average_ticket': 0.0,
                'active_sellers': 0,
                'sellers_meeting_goal': 0,
                'sellers_meeting_challenge': 0,
                'sellers_meeting_mega': 0,
                'sales_delta': PeriodDelta(DeltaKind.NO_CHANGE, 0.0),
            }

        total_sales = sum(p.total_sales_amount for p in performance)
        previous_total = sum(p.previous_period_total_sales_amount for p in performance)
        number_of_sales = sum(p.number_of_sales for p in performance)
        company_goal = sum(p.current_goal_value or 0 for p in performance)

        def meeting(attr: str) -> int:
            count = 0
            for p in performance:
                target = getattr(p, attr) or 0
                if target > 0 and p.total_sales_amount >= target:
                    count += 1
            return count

        return {
            'total_sales': total_sales,
            'previous_total_sales': previous_total,
            'number_of_sales': number_of_sales,
            'new_customers': sum(p.new_customers for p in performance),
            'company_goal': company_goal,
            'company_challenge_total': sum(p.current_challenge_value or 0 for p in performance),
            'company_mega_total': sum(p.current_mega_goal_value or 0 for p in performance),
            'goal_percentage': DashboardMetrics.goal_percentage(total_sales, company_goal),
            'average_ticket': DashboardMetrics.average_ticket(total_sales, number_of_sales),
            'active_sellers': sum(1 for p in performance if p.status == 'active'),
            'sellers_meeting_goal': meeting('current_goal_value'),
            'sellers_meeting_challenge': meeting('current_challenge_value'),
            'sellers_meeting_mega': meeting('current_mega_goal_value'),
            'sales_delta': DashboardMetrics.period_delta(total_sales, previous_total),
        }

    # =========================================================================
    # SELLER REPORT
    # =========================================================================

    @staticmethod
    def tier_progress(
        sold: float,
        goal: Optional[float],
        challenge: Optional[float],
        mega: Optional[float]
    ) -> Dict[str, Dict[str, Optional[float]]]:
        """Goal, challenge and mega meta progress of one seller: target, uncapped % and bar width."""
        targets = {'goal': goal, 'challenge': challenge, 'mega': mega}
        return {
            tier: {
                'target': target,
                'percentage': DashboardMetrics.goal_percentage(sold, target),
                'progress': DashboardMetrics.progress_bar_width(sold, target),
            }
            for tier, target in targets.items()
        }

    @staticmethod
    def monthly_totals(
        records: Iterable[SaleRecord],
        periods: Iterable[str],
        goals: Optional[Dict[str, float]] = None
    ) -> pd.DataFrame:
        """
        Sales per month for the given periods, oldest first.

        Records outside ``periods`` are ignored. Months without sales get
        zero totals; ``goal`` is NaN where no goal is known.
        """
        months = sorted(set(periods))
        df = pd.DataFrame(
            [
                {
                    'month_year': period_of(r.sale_date),
                    'amount': r.amount,
                    'is_new_customer': int(r.is_new_customer),
                }
                for r in records
            ],
            columns=['month_year', 'amount', 'is_new_customer']
        )

        grouped = df.groupby('month_year').agg(
            total=('amount', 'sum'),
            count=('amount', 'size'),
            new_customers=('is_new_customer', 'sum'),
        ).reindex(pd.Index(months, name='month_year'), fill_value=0)

        result = grouped.reset_index()
        result['total'] = result['total'].astype(float)
        result['count'] = result['count'].astype(int)
        result['new_customers'] = result['new_customers'].astype(int)
        result['goal'] = [float((goals or {}).get(m, np.nan) or np.nan) for m in months]
        return result[['month_year', 'total', 'count', 'new_customers', 'goal']]

    # =========================================================================
    # BILLING
    # =========================================================================

    @staticmethod
    def summarize_billing(entries: Iterable[BillingEntry], period: str) -> BillingSummary:
        """Billing statement of a period: sum of its entries."""
        entries = list(entries)
        return BillingSummary(
            month_year=period,
            released_amount=sum(e.released_amount for e in entries),
            atr_amount=sum(e.atr_amount for e in entries),
            entry_count=len(entries),
            notes=[e.notes for e in entries if e.notes],
        )

    @staticmethod
    def billing_split(summary: Optional[BillingSummary]) -> Dict[str, Optional[float]]:
        """Share of released and ATR revenue in the period total, in percent."""
        if summary is None or summary.total_amount <= 0:
            return {'released_percentage': None, 'atr_percentage': None}

        total = summary.total_amount
        return {
            'released_percentage': summary.released_amount / total * 100,
            'atr_percentage': summary.atr_amount / total * 100,
        }
