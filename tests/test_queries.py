from datetime import date

from sqlalchemy import text

from nutrascore.sales_dashboard.models import QueryStatus
from nutrascore.sales_dashboard.queries import DashboardQueries

from conftest import make_engine


def add_kpis(insert_row, month_year, **values):
    row = dict(total_sold=1000.0, total_goal=2000.0, total_clients=10, new_clients=4, global_avg_ticket=100.0)
    row.update(values)
    return insert_row('kpis', month_year=month_year, **row)


def add_profile(insert_row, name, status='active', **values):
    return insert_row(
        'seller_profiles', name=name, email=f"{name.lower()}@example.com", status=status, **values
    )


def add_sale(insert_row, seller_id, amount, sale_date, new=False, order='PO-1'):
    return insert_row(
        'sale_records',
        salesperson_id=seller_id,
        amount=amount,
        sale_date=sale_date,
        is_new_customer=new,
        order_number=order,
        created_at=f"{sale_date}T10:00:00+00:00",
    )


# =============================================================================
# PERIOD RESOLUTION
# =============================================================================

def test_explicit_period_is_used_verbatim(queries):
    assert queries.resolve_active_period('2020-01') == '2020-01'


def test_latest_kpi_period_wins(queries, insert_row):
    add_kpis(insert_row, '2025-03')
    add_kpis(insert_row, '2025-05')
    add_kpis(insert_row, '2025-04')
    insert_row('salespeople', month_year='2025-09', name='Ana')

    assert queries.resolve_active_period() == '2025-05'


def test_falls_back_to_salespeople_period(queries, insert_row):
    insert_row('salespeople', month_year='2025-01', name='Ana')
    insert_row('salespeople', month_year='2025-02', name='Bruno')

    assert queries.resolve_active_period() == '2025-02'


def test_no_period_anywhere_returns_none(queries):
    assert queries.resolve_active_period() is None
    assert queries.get_kpis() is None
    assert queries.get_salespeople() == []
    assert queries.get_daily_sales() == []


def test_failing_kpi_tier_falls_through_to_salespeople():
    engine = make_engine(with_tables=False)
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE salespeople (id VARCHAR(36), month_year VARCHAR(7), name VARCHAR(255))"))
        conn.execute(text("INSERT INTO salespeople VALUES ('s1', '2024-11', 'Ana')"))

    assert DashboardQueries(engine=engine).resolve_active_period() == '2024-11'


def test_resolution_never_raises_without_tables():
    queries = DashboardQueries(engine=make_engine(with_tables=False))

    assert queries.resolve_active_period() is None
    assert queries.get_salespeople() == []


# =============================================================================
# TAGGED RESULTS
# =============================================================================

def test_query_failure_is_visible_through_fetch():
    queries = DashboardQueries(engine=make_engine(with_tables=False))

    result = queries.fetch_kpis('2025-01')

    assert result.status == QueryStatus.FAILED
    assert result.reason
    assert queries.get_kpis('2025-01') is None


def test_empty_and_ok_results_are_distinguished(queries, insert_row):
    add_kpis(insert_row, '2025-01')

    assert queries.fetch_kpis('2024-12').is_empty
    ok = queries.fetch_kpis('2025-01')
    assert ok.is_ok
    assert ok.first().total_sold == 1000.0


def test_malformed_rows_are_dropped(queries, insert_row):
    add_profile(insert_row, 'Ana')
    add_profile(insert_row, 'Bruno', status='on-vacation')

    profiles = queries.get_all_seller_profiles()

    assert [p.name for p in profiles] == ['Ana']


# =============================================================================
# SNAPSHOT READS
# =============================================================================

def test_salespeople_scoped_to_resolved_period(queries, insert_row):
    add_kpis(insert_row, '2025-02')
    insert_row('salespeople', month_year='2025-02', name='Ana', sold=500.0, goal=400.0)
    insert_row('salespeople', month_year='2025-01', name='Bruno', sold=900.0)

    rows = queries.get_salespeople()

    assert [r.name for r in rows] == ['Ana']
    assert rows[0].sold == 500.0


def test_daily_sales_ordered_by_date_for_period_only(queries, insert_row):
    insert_row('daily_sales', month_year='2025-02', date='2025-02-03', sales=30.0, goal=10.0)
    insert_row('daily_sales', month_year='2025-02', date='2025-02-01', sales=10.0, goal=10.0)
    insert_row('daily_sales', month_year='2025-01', date='2025-01-31', sales=99.0, goal=10.0)

    daily = queries.get_daily_sales('2025-02')

    assert [d.date for d in daily] == [date(2025, 2, 1), date(2025, 2, 3)]


def test_daily_sales_comparison_reads_previous_month(queries, insert_row):
    add_kpis(insert_row, '2025-01')
    insert_row('daily_sales', month_year='2025-01', date='2025-01-02', sales=20.0, goal=5.0)
    insert_row('daily_sales', month_year='2024-12', date='2024-12-02', sales=15.0, goal=5.0)

    current, previous = queries.get_daily_sales_comparison()

    assert [d.sales for d in current] == [20.0]
    assert [d.sales for d in previous] == [15.0]


def test_sale_records_filter_by_period_and_seller(queries, insert_row):
    ana = add_profile(insert_row, 'Ana')
    bruno = add_profile(insert_row, 'Bruno')
    add_sale(insert_row, ana, 100.0, '2025-03-01')
    add_sale(insert_row, ana, 200.0, '2025-03-31')
    add_sale(insert_row, ana, 300.0, '2025-04-01')
    add_sale(insert_row, bruno, 50.0, '2025-03-10')

    march = queries.get_sale_records('2025-03')
    anas_march = queries.get_sale_records('2025-03', seller_id=ana)

    assert sorted(r.amount for r in march) == [50.0, 100.0, 200.0]
    assert [r.amount for r in anas_march] == [200.0, 100.0]
    assert len(queries.get_sale_records()) == 4


def test_salespeople_with_performance(queries, insert_row):
    ana = add_profile(insert_row, 'Ana', photo_url='https://x/seller-avatars/a.png')
    bruno = add_profile(insert_row, 'Bruno', status='pending')
    add_sale(insert_row, ana, 100.0, '2025-03-05', new=True)
    add_sale(insert_row, ana, 250.0, '2025-03-20')
    add_sale(insert_row, ana, 80.0, '2025-02-11')
    insert_row(
        'seller_targets', seller_id=ana, month_year='2025-03',
        goal_value=300.0, challenge_value=400.0, mega_goal_value=500.0
    )

    performance = {p.id: p for p in queries.get_salespeople_with_performance('2025-03')}

    assert performance[ana].total_sales_amount == 350.0
    assert performance[ana].number_of_sales == 2
    assert performance[ana].new_customers == 1
    assert performance[ana].previous_period_total_sales_amount == 80.0
    assert performance[ana].current_goal_value == 300.0
    assert performance[bruno].total_sales_amount == 0.0
    assert performance[bruno].current_goal_value is None


def test_billing_summary_sums_period_entries(queries, insert_row):
    insert_row('billing_entries', entry_date='2025-03-01', month_year='2025-03',
               released_amount=100.0, atr_amount=20.0, notes='first')
    insert_row('billing_entries', entry_date='2025-03-15', month_year='2025-03',
               released_amount=50.0, atr_amount=0.0)
    insert_row('billing_entries', entry_date='2025-04-01', month_year='2025-04',
               released_amount=999.0, atr_amount=0.0)

    summary = queries.get_billing_summary('2025-03')

    assert summary.released_amount == 150.0
    assert summary.atr_amount == 20.0
    assert summary.total_amount == 170.0
    assert summary.entry_count == 2
    assert summary.notes == ['first']
    assert queries.fetch_billing_summary('2025-05').is_empty


def test_user_role(queries, engine):
    with engine.begin() as conn:
        conn.execute(text("INSERT INTO user_roles (user_id, role) VALUES ('u1', 'admin')"))

    assert queries.get_user_role('u1').role == 'admin'
    assert queries.get_user_role('u2') is None


def test_single_record_reads(queries, insert_row):
    ana = add_profile(insert_row, 'Ana')
    sale_id = add_sale(insert_row, ana, 120.0, '2025-03-02', new=True)
    insert_row('seller_targets', seller_id=ana, month_year='2025-03', goal_value=500.0)

    sale = queries.get_sale_record_by_id(sale_id)
    assert sale.amount == 120.0
    assert sale.is_new_customer is True
    assert queries.get_sale_record_by_id('missing') is None

    assert queries.get_seller_target(ana, '2025-03').goal_value == 500.0
    assert queries.get_seller_target(ana, '2025-04') is None
    assert queries.get_seller_profile(ana).name == 'Ana'
