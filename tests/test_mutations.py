import json
from datetime import date

from sqlalchemy import text

from nutrascore.sales_dashboard.history import HistoryLog
from nutrascore.sales_dashboard.mutations import DashboardMutations

from conftest import make_engine

ACTOR = 'user-1'
ACTOR_EMAIL = 'admin@example.com'


def fetch_row(engine, table, record_id):
    with engine.connect() as conn:
        row = conn.execute(text(f"SELECT * FROM {table} WHERE id = :id"), {'id': record_id}).mappings().first()
    return dict(row) if row else None


def history_rows(engine):
    with engine.connect() as conn:
        return [dict(r) for r in conn.execute(text("SELECT * FROM history_log")).mappings()]


def new_sale(seller_id='seller-1', **overrides):
    sale = {
        'salesperson_id': seller_id,
        'amount': 150.0,
        'sale_date': date(2025, 3, 10),
        'is_new_customer': True,
        'order_number': 'PO-100',
        'customer_name': 'Farmácia Central',
    }
    sale.update(overrides)
    return sale


# =============================================================================
# SELLER PROFILES
# =============================================================================

def test_create_seller_profile_stamps_audit_fields(mutations, engine):
    result = mutations.create_seller_profile(
        {'name': '  Ana Souza ', 'email': 'Ana@Example.com'}, ACTOR, ACTOR_EMAIL
    )

    assert result.error is None
    profile = result.data
    assert profile.name == 'Ana Souza'
    assert profile.email == 'ana@example.com'
    assert profile.status == 'pending'

    row = fetch_row(engine, 'seller_profiles', profile.id)
    assert row['created_by'] == ACTOR
    assert row['updated_by'] == ACTOR
    assert row['created_at'] and row['updated_at']


def test_create_seller_profile_records_history(mutations, engine):
    result = mutations.create_seller_profile({'name': 'Ana', 'email': 'ana@example.com'}, ACTOR, ACTOR_EMAIL)

    entries = history_rows(engine)
    assert len(entries) == 1
    assert entries[0]['action_type'] == 'CREATE'
    assert entries[0]['record_type'] == 'seller_profile'
    assert entries[0]['record_id'] == result.data.id
    assert entries[0]['user_email'] == ACTOR_EMAIL
    assert json.loads(entries[0]['details'])['name'] == 'Ana'


def test_invalid_payload_returns_error_without_writing(mutations, count_rows):
    result = mutations.create_seller_profile({'name': 'Ana', 'email': 'not-an-email'}, ACTOR)

    assert result.data is None
    assert 'email' in result.error
    assert count_rows('seller_profiles') == 0


def test_write_requires_actor(mutations, count_rows):
    result = mutations.create_seller_profile({'name': 'Ana', 'email': 'ana@example.com'}, None)

    assert result.error
    assert count_rows('seller_profiles') == 0


def test_empty_photo_url_is_stored_as_null(mutations, engine):
    created = mutations.create_seller_profile(
        {'name': 'Ana', 'email': 'ana@example.com', 'photo_url': 'https://x/seller-avatars/a.png'}, ACTOR
    ).data

    result = mutations.update_seller_profile(created.id, {'photo_url': ''}, ACTOR)

    assert result.error is None
    assert result.data.photo_url is None
    assert fetch_row(engine, 'seller_profiles', created.id)['photo_url'] is None


def test_partial_update_leaves_unset_fields(mutations):
    created = mutations.create_seller_profile(
        {'name': 'Ana', 'email': 'ana@example.com', 'status': 'active'}, ACTOR
    ).data

    updated = mutations.update_seller_profile(created.id, {'name': 'Ana Paula'}, 'user-2').data

    assert updated.name == 'Ana Paula'
    assert updated.status == 'active'
    assert updated.created_by == ACTOR
    assert updated.updated_by == 'user-2'


def test_update_strips_name_and_rejects_blank(mutations, engine):
    created = mutations.create_seller_profile({'name': 'Ana', 'email': 'ana@example.com'}, ACTOR).data

    blank = mutations.update_seller_profile(created.id, {'name': '   '}, ACTOR)
    padded = mutations.update_seller_profile(created.id, {'name': '  Ana Paula  '}, ACTOR)

    assert blank.error
    assert padded.data.name == 'Ana Paula'
    assert fetch_row(engine, 'seller_profiles', created.id)['name'] == 'Ana Paula'


def test_update_missing_profile_is_an_error(mutations):
    result = mutations.update_seller_profile('missing', {'name': 'X'}, ACTOR)

    assert result.data is None
    assert 'not found' in result.error


def test_delete_seller_profile_is_hard_delete(mutations, count_rows):
    created = mutations.create_seller_profile({'name': 'Ana', 'email': 'ana@example.com'}, ACTOR).data

    result = mutations.delete_seller_profile(created.id, ACTOR, ACTOR_EMAIL)

    assert result.error is None
    assert result.data.id == created.id
    assert count_rows('seller_profiles') == 0
    assert count_rows('history_log', "action_type = 'DELETE'") == 1


# =============================================================================
# SALE RECORDS
# =============================================================================

def test_create_sale_record_parses_comma_amount(mutations, engine):
    result = mutations.create_sale_record(new_sale(amount='1234,50'), ACTOR)

    assert result.error is None
    assert result.data.amount == 1234.5
    row = fetch_row(engine, 'sale_records', result.data.id)
    assert row['sale_date'] == '2025-03-10'
    assert row['created_by'] == ACTOR


def test_sale_amount_must_be_positive(mutations, count_rows):
    result = mutations.create_sale_record(new_sale(amount=0), ACTOR)

    assert result.error
    assert count_rows('sale_records') == 0


def test_update_sale_record_keeps_owner_and_creator(mutations, monkeypatch):
    sale = mutations.create_sale_record(new_sale(), ACTOR).data
    monkeypatch.setattr(
        'nutrascore.sales_dashboard.mutations.utc_now', lambda: '2030-01-01T00:00:00+00:00'
    )

    result = mutations.update_sale_record(
        sale.id, {'amount': 200.0, 'salesperson_id': 'someone-else'}, 'user-2'
    )

    assert result.error is None
    updated = result.data
    assert updated.amount == 200.0
    assert updated.salesperson_id == 'seller-1'
    assert updated.created_by == ACTOR
    assert updated.created_at == sale.created_at
    assert updated.updated_by == 'user-2'
    assert updated.updated_at == '2030-01-01T00:00:00+00:00'


def test_update_without_changes_still_restamps(mutations, monkeypatch):
    sale = mutations.create_sale_record(new_sale(), ACTOR).data
    monkeypatch.setattr(
        'nutrascore.sales_dashboard.mutations.utc_now', lambda: '2031-05-05T00:00:00+00:00'
    )

    updated = mutations.update_sale_record(sale.id, {}, ACTOR).data

    assert updated.updated_at == '2031-05-05T00:00:00+00:00'


def test_delete_sale_record(mutations, count_rows):
    sale = mutations.create_sale_record(new_sale(), ACTOR).data

    assert mutations.delete_sale_record(sale.id, ACTOR).error is None
    assert count_rows('sale_records') == 0
    assert 'not found' in mutations.delete_sale_record(sale.id, ACTOR).error


def test_history_failure_does_not_fail_the_write(engine, count_rows):
    broken_history = HistoryLog(engine=make_engine(with_tables=False), enabled=True)
    mutations = DashboardMutations(engine=engine, history=broken_history)

    result = mutations.create_sale_record(new_sale(), ACTOR)

    assert result.error is None
    assert count_rows('sale_records') == 1
    assert len(broken_history.failures) == 1
    entry, reason = broken_history.failures[0]
    assert entry.record_id == result.data.id
    assert reason


# =============================================================================
# BILLING / TARGETS
# =============================================================================

def test_billing_entry_period_follows_entry_date(mutations):
    entry = mutations.add_billing_entry(
        {'entry_date': '2025-03-28', 'released_amount': '1000,00', 'atr_amount': 250, 'notes': ' '},
        ACTOR
    ).data

    assert entry.month_year == '2025-03'
    assert entry.released_amount == 1000.0
    assert entry.notes is None

    moved = mutations.update_billing_entry(entry.id, {'entry_date': date(2025, 4, 2)}, ACTOR).data
    assert moved.month_year == '2025-04'
    assert moved.atr_amount == 250.0


def test_negative_billing_amount_rejected(mutations):
    result = mutations.add_billing_entry({'entry_date': '2025-03-01', 'released_amount': -1}, ACTOR)

    assert result.error


def test_save_seller_target_inserts_then_updates(mutations, count_rows):
    target = {'seller_id': 'seller-1', 'month_year': '2025-03', 'goal_value': 1000.0,
              'challenge_value': 1500.0, 'mega_goal_value': 2000.0}

    first = mutations.save_seller_target(target, ACTOR).data
    second = mutations.save_seller_target({**target, 'goal_value': 1200.0}, 'user-2').data

    assert count_rows('seller_targets') == 1
    assert second.id == first.id
    assert second.goal_value == 1200.0
    assert second.created_by == ACTOR
    assert second.updated_by == 'user-2'


def test_seller_target_period_is_validated(mutations):
    result = mutations.add_seller_target({'seller_id': 'seller-1', 'month_year': '2025-3'}, ACTOR)

    assert result.error
