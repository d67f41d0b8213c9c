# nutrascore/sales_dashboard/errors.py
"""Exceptions for caller misuse. Store and storage failures are returned as results."""


class DashboardError(Exception):
    """Base error of the sales dashboard package."""


class PhotoValidationError(DashboardError):
    """Uploaded photo is too large or not an accepted image type."""


class EditInProgressError(DashboardError):
    """Another edit of the same seller profile is running."""
