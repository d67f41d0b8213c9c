# nutrascore/sales_dashboard/constants.py
"""
Constants for the Sales Dashboard Module

Centralized configuration for:
- Seller statuses and roles
- History log vocabulary
- Color schemes
- Chart settings
- Upload limits
"""

# =====================================================================
# SELLER STATUS
# =====================================================================

SELLER_STATUSES = ['active', 'inactive', 'pending']

DEFAULT_SELLER_STATUS = 'pending'

STATUS_LABELS = {
    'active': 'Ativo',
    'inactive': 'Inativo',
    'pending': 'Pendente',
}

# =====================================================================
# ROLES
# =====================================================================

USER_ROLES = ['admin', 'manager', 'seller']

ADMIN_ROLES = ['admin', 'manager']

# =====================================================================
# HISTORY LOG
# =====================================================================

ACTION_CREATE = 'CREATE'
ACTION_UPDATE = 'UPDATE'
ACTION_DELETE = 'DELETE'

RECORD_SELLER_PROFILE = 'seller_profile'
RECORD_SALE = 'sale_record'
RECORD_BILLING_ENTRY = 'billing_entry'
RECORD_SELLER_TARGET = 'seller_target'

# =====================================================================
# COLOR SCHEME
# =====================================================================

COLORS = {
    "sales": "#10b981",                # Emerald
    "goal": "#ef4444",                 # Red
    "current_period": "#10b981",
    "previous_period": "#94a3b8",      # Slate
    "new_clients": "#10b981",
    "returning_clients": "#059669",

    # Achievement tiers
    "mega": "#facc15",                 # Yellow
    "challenge": "#fb923c",            # Orange
    "goal_reached": "#10b981",
    "below_goal": "#d1d5db",           # Gray

    # Delta
    "delta_positive": "#28a745",
    "delta_negative": "#dc3545",

    # Misc
    "text_dark": "#333333",
    "text_light": "#666666",
}

# =====================================================================
# DAILY SERIES
# =====================================================================

DAY_KEYS = [f"{day:02d}" for day in range(1, 32)]

# =====================================================================
# CHART DIMENSIONS
# =====================================================================

CHART_WIDTH = 800
CHART_HEIGHT = 350

PIE_CHART_WIDTH = 300
PIE_CHART_HEIGHT = 260

# =====================================================================
# CACHE SETTINGS
# =====================================================================

DEFAULT_CACHE_TTL_SECONDS = 300

# =====================================================================
# UPLOADS
# =====================================================================

MAX_PHOTO_SIZE_BYTES = 2 * 1024 * 1024  # 2MB

ACCEPTED_IMAGE_TYPES = ['image/jpeg', 'image/png', 'image/gif', 'image/webp']

# =====================================================================
# CURRENCY
# =====================================================================

CURRENCY_SYMBOL = "R$"

# =====================================================================
# GOAL STATUS / ACHIEVEMENT TIERS
# =====================================================================

GOAL_STATUS_LABELS = {
    'not_defined': 'Meta não definida',
    'achieved': 'Alcançada!',
    'in_progress': 'Em Progresso',
    'not_started': 'Não Iniciada',
}

TIER_LABELS = {
    'mega': 'Mega Meta',
    'challenge': 'Desafio',
    'goal': 'Meta',
    'below': 'Abaixo da Meta',
}
