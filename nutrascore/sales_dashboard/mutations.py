# nutrascore/sales_dashboard/mutations.py
"""
Write operations for the Sales Dashboard

Every write:
- validates its payload with the pydantic payload model
- stamps audit fields (created_by/at, updated_by/at) from the explicit actor
- runs in one transaction
- returns WriteResult(data, error); nothing is raised to the pages
- on success, records a best-effort history entry
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..db import get_db_engine
from .constants import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_UPDATE,
    RECORD_BILLING_ENTRY,
    RECORD_SALE,
    RECORD_SELLER_PROFILE,
    RECORD_SELLER_TARGET,
)
from .history import HistoryLog
from .models import (
    BillingEntry,
    BillingEntryCreate,
    BillingEntryUpdate,
    SaleRecord,
    SaleRecordCreate,
    SaleRecordUpdate,
    SellerProfile,
    SellerProfileCreate,
    SellerProfileUpdate,
    SellerTarget,
    SellerTargetCreate,
    SellerTargetUpdate,
    WriteResult,
    validation_message,
)
from .periods import period_of

logger = logging.getLogger(__name__)

Payload = Union[Dict[str, Any], BaseModel]

ACTOR_REQUIRED = "An authenticated user is required for this operation."


def utc_now() -> str:
    """Audit timestamp, ISO-8601 in UTC."""
    return datetime.now(timezone.utc).isoformat()


def _to_db(row: Dict[str, Any]) -> Dict[str, Any]:
    """Bind-ready copy of a row: dates become ISO strings."""
    return {
        key: value.isoformat() if isinstance(value, date) else value
        for key, value in row.items()
    }


class NotFound(Exception):
    pass


class DashboardMutations:
    """
    Create/update/delete for seller profiles, sale records, billing
    entries and seller targets.

    Usage:
        mutations = DashboardMutations()
        result = mutations.create_sale_record(form_data, user_id, user_email)
        if result.error:
            st.error(result.error)
    """

    def __init__(self, engine=None, history: HistoryLog = None):
        self._engine = engine
        self.history = history or HistoryLog(engine=engine)

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    # =========================================================================
    # SELLER PROFILES
    # =========================================================================

    def create_seller_profile(
        self,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerProfile]:
        return self._create(
            'seller_profiles', SellerProfileCreate, SellerProfile, data,
            actor_id, actor_email, RECORD_SELLER_PROFILE
        )

    def update_seller_profile(
        self,
        seller_id: str,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerProfile]:
        """Partial update. An empty photo URL is stored as NULL."""
        return self._update(
            'seller_profiles', SellerProfileUpdate, SellerProfile, seller_id, data,
            actor_id, actor_email, RECORD_SELLER_PROFILE
        )

    def delete_seller_profile(
        self,
        seller_id: str,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerProfile]:
        """Hard delete of the profile row. The stored photo is not touched."""
        return self._delete(
            'seller_profiles', SellerProfile, seller_id,
            actor_id, actor_email, RECORD_SELLER_PROFILE
        )

    # =========================================================================
    # SALE RECORDS
    # =========================================================================

    def create_sale_record(
        self,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SaleRecord]:
        return self._create(
            'sale_records', SaleRecordCreate, SaleRecord, data,
            actor_id, actor_email, RECORD_SALE
        )

    def update_sale_record(
        self,
        sale_id: str,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SaleRecord]:
        """Owner and creator are kept; updated_at is re-stamped on every call."""
        return self._update(
            'sale_records', SaleRecordUpdate, SaleRecord, sale_id, data,
            actor_id, actor_email, RECORD_SALE
        )

    def delete_sale_record(
        self,
        sale_id: str,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SaleRecord]:
        return self._delete('sale_records', SaleRecord, sale_id, actor_id, actor_email, RECORD_SALE)

    # =========================================================================
    # BILLING ENTRIES
    # =========================================================================

    def add_billing_entry(
        self,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[BillingEntry]:
        """Insert a billing entry; its period is derived from ``entry_date``."""
        return self._create(
            'billing_entries', BillingEntryCreate, BillingEntry, data,
            actor_id, actor_email, RECORD_BILLING_ENTRY,
            derive=lambda row: {'month_year': period_of(row['entry_date'])}
        )

    def update_billing_entry(
        self,
        entry_id: str,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[BillingEntry]:
        return self._update(
            'billing_entries', BillingEntryUpdate, BillingEntry, entry_id, data,
            actor_id, actor_email, RECORD_BILLING_ENTRY,
            derive=lambda changes: (
                {'month_year': period_of(changes['entry_date'])} if changes.get('entry_date') else {}
            )
        )

    def delete_billing_entry(
        self,
        entry_id: str,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[BillingEntry]:
        return self._delete(
            'billing_entries', BillingEntry, entry_id, actor_id, actor_email, RECORD_BILLING_ENTRY
        )

    # =========================================================================
    # SELLER TARGETS
    # =========================================================================

    def add_seller_target(
        self,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerTarget]:
        return self._create(
            'seller_targets', SellerTargetCreate, SellerTarget, data,
            actor_id, actor_email, RECORD_SELLER_TARGET
        )

    def update_seller_target(
        self,
        target_id: str,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerTarget]:
        return self._update(
            'seller_targets', SellerTargetUpdate, SellerTarget, target_id, data,
            actor_id, actor_email, RECORD_SELLER_TARGET
        )

    def save_seller_target(
        self,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str] = None
    ) -> WriteResult[SellerTarget]:
        """Insert the seller's target for the period, or update it if one exists."""
        try:
            payload = self._validate(SellerTargetCreate, data)
        except ValidationError as e:
            return WriteResult.failure(validation_message(e))

        try:
            with self.engine.connect() as conn:
                existing = conn.execute(
                    text("""
                        SELECT id FROM seller_targets
                        WHERE seller_id = :seller_id AND month_year = :month_year
                    """),
                    {'seller_id': payload.seller_id, 'month_year': payload.month_year}
                ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error looking up seller target: {e}")
            return WriteResult.failure(f"Could not save target: {e}")

        if existing is None:
            return self.add_seller_target(payload, actor_id, actor_email)

        changes = payload.model_dump(include={'goal_value', 'challenge_value', 'mega_goal_value'})
        return self.update_seller_target(existing[0], changes, actor_id, actor_email)

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _validate(model: Type[BaseModel], data: Payload) -> BaseModel:
        if isinstance(data, model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump(exclude_unset=True)
        return model.model_validate(data)

    def _create(
        self,
        table: str,
        payload_model: Type[BaseModel],
        row_model: Type[BaseModel],
        data: Payload,
        actor_id: str,
        actor_email: Optional[str],
        record_type: str,
        derive=None
    ) -> WriteResult:
        if not actor_id:
            return WriteResult.failure(ACTOR_REQUIRED)

        try:
            payload = self._validate(payload_model, data)
        except ValidationError as e:
            return WriteResult.failure(validation_message(e))

        now = utc_now()
        row = payload.model_dump()
        if derive:
            row.update(derive(row))
        row.update({
            'id': str(uuid.uuid4()),
            'created_by': actor_id,
            'created_at': now,
            'updated_by': actor_id,
            'updated_at': now,
        })

        columns = ', '.join(row)
        placeholders = ', '.join(f":{column}" for column in row)

        try:
            with self.engine.begin() as conn:
                conn.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"), _to_db(row))
        except SQLAlchemyError as e:
            logger.error(f"Error creating {record_type}: {e}")
            return WriteResult.failure(f"Could not create {record_type}: {e}")

        record = row_model.model_validate(row)
        logger.info(f"✅ Created {record_type} {record.id} by {actor_id}")

        self.history.record(
            actor_id, actor_email, ACTION_CREATE, record_type, record.id,
            payload.model_dump(mode='json')
        )
        return WriteResult.success(record)

    def _update(
        self,
        table: str,
        payload_model: Type[BaseModel],
        row_model: Type[BaseModel],
        record_id: str,
        data: Payload,
        actor_id: str,
        actor_email: Optional[str],
        record_type: str,
        derive=None
    ) -> WriteResult:
        if not actor_id:
            return WriteResult.failure(ACTOR_REQUIRED)

        try:
            payload = self._validate(payload_model, data)
        except ValidationError as e:
            return WriteResult.failure(validation_message(e))

        changes = payload.model_dump(exclude_unset=True)
        if derive:
            changes.update(derive(changes))
        changes.update({'updated_by': actor_id, 'updated_at': utc_now()})

        assignments = ', '.join(f"{column} = :{column}" for column in changes)
        params = _to_db(changes)
        params['record_id'] = record_id

        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    text(f"UPDATE {table} SET {assignments} WHERE id = :record_id"), params
                )
                if result.rowcount == 0:
                    raise NotFound(record_id)
                row = self._select_row(conn, table, record_id)
        except NotFound:
            logger.warning(f"Update of missing {record_type} {record_id}")
            return WriteResult.failure(f"{record_type} {record_id} not found")
        except SQLAlchemyError as e:
            logger.error(f"Error updating {record_type} {record_id}: {e}")
            return WriteResult.failure(f"Could not update {record_type}: {e}")

        record = row_model.model_validate(row)
        logger.info(f"✅ Updated {record_type} {record_id} by {actor_id}")

        self.history.record(
            actor_id, actor_email, ACTION_UPDATE, record_type, record_id,
            payload.model_dump(mode='json', exclude_unset=True)
        )
        return WriteResult.success(record)

    def _delete(
        self,
        table: str,
        row_model: Type[BaseModel],
        record_id: str,
        actor_id: str,
        actor_email: Optional[str],
        record_type: str
    ) -> WriteResult:
        if not actor_id:
            return WriteResult.failure(ACTOR_REQUIRED)

        try:
            with self.engine.begin() as conn:
                row = self._select_row(conn, table, record_id)
                if row is None:
                    raise NotFound(record_id)
                conn.execute(text(f"DELETE FROM {table} WHERE id = :record_id"), {'record_id': record_id})
        except NotFound:
            logger.warning(f"Delete of missing {record_type} {record_id}")
            return WriteResult.failure(f"{record_type} {record_id} not found")
        except SQLAlchemyError as e:
            logger.error(f"Error deleting {record_type} {record_id}: {e}")
            return WriteResult.failure(f"Could not delete {record_type}: {e}")

        record = row_model.model_validate(row)
        logger.info(f"🗑️ Deleted {record_type} {record_id} by {actor_id}")

        self.history.record(
            actor_id, actor_email, ACTION_DELETE, record_type, record_id,
            record.model_dump(mode='json', exclude={'created_by', 'created_at', 'updated_by', 'updated_at'})
        )
        return WriteResult.success(record)

    @staticmethod
    def _select_row(conn, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            text(f"SELECT * FROM {table} WHERE id = :record_id"), {'record_id': record_id}
        ).mappings().first()
        return dict(row) if row is not None else None
