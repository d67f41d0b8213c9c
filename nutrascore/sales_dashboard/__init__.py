# nutrascore/sales_dashboard/__init__.py
"""
Sales Dashboard Module

Components:
- queries: reads with period resolution, tagged results and cached loaders
- mutations: audited writes returning WriteResult
- history: best-effort audit trail
- metrics: goal progress, deltas, ranking, customer mix, daily series
- seller_service: seller create/update/delete with photo handling
- charts: Altair visualizations and st.metric cards

Usage:
    from nutrascore.sales_dashboard import (
        DashboardQueries,
        DashboardMutations,
        DashboardMetrics,
        DashboardCharts,
        SellerProfileService,
    )
"""

from .queries import DashboardQueries, invalidate
from .mutations import DashboardMutations
from .history import HistoryLog
from .metrics import DashboardMetrics, PeriodDelta, DeltaKind, CustomerMix
from .seller_service import SellerProfileService, PhotoUpload, SellerResult
from .charts import DashboardCharts, format_brl
from .models import QueryResult, QueryStatus, WriteResult
from .errors import DashboardError, PhotoValidationError, EditInProgressError
from .tables import create_tables

# Constants
from .constants import (
    COLORS,
    SELLER_STATUSES,
    STATUS_LABELS,
    ADMIN_ROLES,
    CHART_WIDTH,
    CHART_HEIGHT,
)

__all__ = [
    # Classes
    'DashboardQueries',
    'DashboardMutations',
    'HistoryLog',
    'DashboardMetrics',
    'DashboardCharts',
    'SellerProfileService',
    'PhotoUpload',
    'SellerResult',
    'PeriodDelta',
    'DeltaKind',
    'CustomerMix',
    'QueryResult',
    'QueryStatus',
    'WriteResult',

    # Errors
    'DashboardError',
    'PhotoValidationError',
    'EditInProgressError',

    # Functions
    'invalidate',
    'format_brl',
    'create_tables',

    # Constants
    'COLORS',
    'SELLER_STATUSES',
    'STATUS_LABELS',
    'ADMIN_ROLES',
    'CHART_WIDTH',
    'CHART_HEIGHT',
]

__version__ = '1.0.0'
