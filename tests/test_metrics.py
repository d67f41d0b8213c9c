from datetime import date

import pandas as pd
import pytest

from nutrascore.sales_dashboard.metrics import DashboardMetrics, DeltaKind
from nutrascore.sales_dashboard.models import (
    BillingEntry,
    BillingSummary,
    DailySale,
    SaleRecord,
    SalespersonPerformance,
    SellerProfile,
    SellerTarget,
)


def sale(seller_id, amount, new=False, day=5):
    return SaleRecord(
        id=f"{seller_id}-{amount}-{day}",
        salesperson_id=seller_id,
        amount=amount,
        sale_date=date(2025, 3, day),
        is_new_customer=new,
        order_number='PO-1',
    )


def profile(seller_id, name, status='active'):
    return SellerProfile(id=seller_id, name=name, email=f"{seller_id}@example.com", status=status)


def performance(seller_id, total, previous=0.0, goal=None, challenge=None, mega=None,
                count=1, new=0, status='active'):
    return SalespersonPerformance(
        id=seller_id, name=seller_id, status=status, month_year='2025-03',
        total_sales_amount=total, number_of_sales=count, new_customers=new,
        previous_period_total_sales_amount=previous,
        current_goal_value=goal, current_challenge_value=challenge, current_mega_goal_value=mega,
    )


# =============================================================================
# GOAL PROGRESS
# =============================================================================

def test_goal_percentage_is_not_capped_but_bar_is():
    assert DashboardMetrics.goal_percentage(15000, 10000) == 150
    assert DashboardMetrics.progress_bar_width(15000, 10000) == 100.0
    assert DashboardMetrics.progress_bar_width(2500, 10000) == 25.0


def test_goal_percentage_without_goal():
    assert DashboardMetrics.goal_percentage(500, 0) is None
    assert DashboardMetrics.goal_percentage(500, None) is None
    assert DashboardMetrics.progress_bar_width(500, 0) == 0.0


@pytest.mark.parametrize('sold, goal, expected', [
    (100, 0, 'not_defined'),
    (100, 100, 'achieved'),
    (40, 100, 'in_progress'),
    (0, 100, 'not_started'),
])
def test_goal_status(sold, goal, expected):
    assert DashboardMetrics.goal_status(sold, goal) == expected


def test_achievement_tier_picks_highest_reached_target():
    assert DashboardMetrics.achievement_tier(2100, 1000, 1500, 2000) == 'mega'
    assert DashboardMetrics.achievement_tier(1600, 1000, 1500, 2000) == 'challenge'
    assert DashboardMetrics.achievement_tier(1000, 1000, 1500, 2000) == 'goal'
    assert DashboardMetrics.achievement_tier(999, 1000, 1500, 2000) == 'below'
    assert DashboardMetrics.achievement_tier(5000, None, 0, None) == 'below'


# =============================================================================
# DELTAS
# =============================================================================

def test_delta_from_zero_is_infinite_growth():
    delta = DashboardMetrics.period_delta(500, 0)

    assert delta.kind == DeltaKind.INFINITE_GROWTH
    assert delta.is_positive
    assert delta.label() == "+∞%"


def test_delta_zero_to_zero_is_no_change():
    delta = DashboardMetrics.period_delta(0, 0)

    assert delta.kind == DeltaKind.NO_CHANGE
    assert delta.percent == 0.0
    assert not delta.is_positive


def test_delta_percent():
    assert DashboardMetrics.period_delta(150, 100).percent == pytest.approx(50.0)
    down = DashboardMetrics.period_delta(75, 100)
    assert down.percent == pytest.approx(-25.0)
    assert down.label() == "-25.0%"


# =============================================================================
# RANKING
# =============================================================================

def test_ranking_is_descending_and_stable():
    rows = [
        {'name': 'A', 'sold': 100.0},
        {'name': 'B', 'sold': 300.0},
        {'name': 'C', 'sold': 50.0},
        {'name': 'D', 'sold': 100.0},
    ]

    ranked = DashboardMetrics.rank_salespeople(rows)

    assert [r['name'] for r in ranked] == ['B', 'A', 'D', 'C']


def test_ranking_tie_keeps_input_order():
    rows = [{'name': 'A', 'sold': 100.0}, {'name': 'B', 'sold': 200.0}, {'name': 'C', 'sold': 100.0}]

    assert [r['name'] for r in DashboardMetrics.rank_salespeople(rows)] == ['B', 'A', 'C']


def test_build_ranking_from_performance_rows():
    rows = [
        performance('ana', 1200.0, goal=1000.0, challenge=1500.0, mega=2000.0),
        performance('bruno', 2500.0, goal=1000.0, challenge=1500.0, mega=2000.0),
        performance('carla', 0.0),
    ]

    df = DashboardMetrics.build_ranking(
        rows,
        value_key='total_sales_amount',
        goal_key='current_goal_value',
        challenge_key='current_challenge_value',
        mega_key='current_mega_goal_value',
    )

    assert list(df['name']) == ['bruno', 'ana', 'carla']
    assert list(df['rank']) == [1, 2, 3]
    assert list(df['tier']) == ['mega', 'goal', 'below']
    assert df.loc[0, 'goal_percentage'] == 250
    assert df.loc[0, 'progress'] == 100.0
    assert pd.isna(df.loc[2, 'goal_percentage'])


def test_build_ranking_empty():
    df = DashboardMetrics.build_ranking([])

    assert df.empty
    assert 'tier' in df.columns


# =============================================================================
# CUSTOMERS / TICKET
# =============================================================================

def test_customer_mix():
    mix = DashboardMetrics.customer_mix(10, 4)

    assert mix.returning == 6
    assert mix.new_percentage == 40.0


def test_customer_mix_returning_never_negative():
    mix = DashboardMetrics.customer_mix(10, 15)

    assert mix.returning == 0
    assert DashboardMetrics.customer_mix(0, 0).new_percentage is None


def test_average_ticket():
    assert DashboardMetrics.average_ticket(1000.0, 4) == 250.0
    assert DashboardMetrics.average_ticket(1000.0, 0) == 0.0


# =============================================================================
# DAILY SERIES
# =============================================================================

def test_align_daily_series_keeps_gaps_as_none():
    current = [
        DailySale(date=date(2025, 3, 1), sales=100.0, goal=80.0),
        DailySale(date=date(2025, 3, 3), sales=50.0, goal=80.0),
    ]
    previous = [
        DailySale(date=date(2025, 2, 1), sales=70.0, goal=60.0),
        DailySale(date=date(2025, 2, 2), sales=40.0, goal=60.0),
    ]

    rows = DashboardMetrics.align_daily_series(current, previous)

    assert [r['day'] for r in rows] == ['01', '02', '03']
    assert rows[0] == {'day': '01', 'current': 100.0, 'previous': 70.0, 'goal': 80.0}
    assert rows[1]['current'] is None
    assert rows[1]['previous'] == 40.0
    assert rows[2]['previous'] is None


# =============================================================================
# PERFORMANCE / COMPANY
# =============================================================================

def test_aggregate_sales():
    totals = DashboardMetrics.aggregate_sales([
        sale('ana', 100.0, new=True),
        sale('ana', 50.0, day=6),
        sale('bruno', 30.0, new=True),
    ])

    assert totals['ana'] == {'total': 150.0, 'count': 2, 'new': 1}
    assert totals['bruno'] == {'total': 30.0, 'count': 1, 'new': 1}
    assert DashboardMetrics.aggregate_sales([]) == {}


def test_build_salesperson_performance_fills_missing_data():
    rows = DashboardMetrics.build_salesperson_performance(
        profiles=[profile('ana', 'Ana'), profile('bruno', 'Bruno', status='pending')],
        current_sales=[sale('ana', 100.0)],
        previous_sales=[sale('bruno', 70.0)],
        targets=[SellerTarget(id='t1', seller_id='ana', month_year='2025-03', goal_value=90.0)],
        period='2025-03',
    )

    ana, bruno = rows
    assert ana.total_sales_amount == 100.0
    assert ana.current_goal_value == 90.0
    assert ana.previous_period_total_sales_amount == 0.0
    assert bruno.total_sales_amount == 0.0
    assert bruno.previous_period_total_sales_amount == 70.0
    assert bruno.current_goal_value is None


def test_company_monthly_metrics():
    metrics = DashboardMetrics.company_monthly_metrics([
        performance('ana', 1200.0, previous=1000.0, goal=1000.0, challenge=1500.0, count=3, new=1),
        performance('bruno', 800.0, previous=1000.0, goal=1000.0, count=1, status='pending'),
    ])

    assert metrics['total_sales'] == 2000.0
    assert metrics['company_goal'] == 2000.0
    assert metrics['goal_percentage'] == 100.0
    assert metrics['average_ticket'] == 500.0
    assert metrics['active_sellers'] == 1
    assert metrics['sellers_meeting_goal'] == 1
    assert metrics['sellers_meeting_challenge'] == 0
    assert metrics['sales_delta'].kind == DeltaKind.PERCENT
    assert metrics['sales_delta'].percent == 0.0


def test_company_monthly_metrics_without_sellers():
    metrics = DashboardMetrics.company_monthly_metrics([])

    assert metrics['total_sales'] == 0.0
    assert metrics['goal_percentage'] is None


# =============================================================================
# SELLER REPORT
# =============================================================================

def test_tier_progress():
    progress = DashboardMetrics.tier_progress(1500.0, 1000.0, 1500.0, None)

    assert progress['goal'] == {'target': 1000.0, 'percentage': 150.0, 'progress': 100.0}
    assert progress['challenge']['percentage'] == 100.0
    assert progress['mega']['percentage'] is None
    assert progress['mega']['progress'] == 0.0


def test_monthly_totals_fills_missing_months():
    records = [
        sale('ana', 100.0, new=True),
        sale('ana', 50.0, day=6),
        SaleRecord(id='jan', salesperson_id='ana', amount=70.0, sale_date=date(2025, 1, 20),
                   order_number='PO-2'),
        SaleRecord(id='old', salesperson_id='ana', amount=999.0, sale_date=date(2024, 6, 1),
                   order_number='PO-3'),
    ]

    df = DashboardMetrics.monthly_totals(
        records, ['2025-03', '2025-02', '2025-01'], goals={'2025-03': 120.0}
    )

    assert list(df['month_year']) == ['2025-01', '2025-02', '2025-03']
    assert list(df['total']) == [70.0, 0.0, 150.0]
    assert list(df['count']) == [1, 0, 2]
    assert list(df['new_customers']) == [0, 0, 1]
    assert pd.isna(df.loc[0, 'goal'])
    assert df.loc[2, 'goal'] == 120.0


def test_monthly_totals_without_records():
    df = DashboardMetrics.monthly_totals([], ['2025-02', '2025-03'])

    assert list(df['month_year']) == ['2025-02', '2025-03']
    assert df['total'].sum() == 0.0
    assert df['goal'].isna().all()


# =============================================================================
# BILLING
# =============================================================================

def test_summarize_billing_and_split():
    entries = [
        BillingEntry(id='b1', entry_date=date(2025, 3, 1), month_year='2025-03',
                     released_amount=300.0, atr_amount=100.0, notes='NF 10'),
        BillingEntry(id='b2', entry_date=date(2025, 3, 9), month_year='2025-03',
                     released_amount=300.0, atr_amount=100.0),
    ]

    summary = DashboardMetrics.summarize_billing(entries, '2025-03')
    split = DashboardMetrics.billing_split(summary)

    assert summary.total_amount == 800.0
    assert summary.notes == ['NF 10']
    assert split == {'released_percentage': 75.0, 'atr_percentage': 25.0}


def test_billing_split_without_revenue():
    empty = BillingSummary(month_year='2025-03')

    assert DashboardMetrics.billing_split(empty) == {'released_percentage': None, 'atr_percentage': None}
    assert DashboardMetrics.billing_split(None)['atr_percentage'] is None
