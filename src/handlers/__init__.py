"""
Lambda handlers package for AWS Lambda functions.
"""
from .cycles import create_handler, list_handler, delete_handler as delete_cycle_handler
from .readings import log_handler, range_handler, update_handler, delete_handler as delete_reading_handler
from .statistics import handler as analytics_handler
from .account import share_handler, revoke_share_handler, clear_data_handler

__all__ = [
    "create_handler",
    "list_handler",
    "delete_cycle_handler",
    "log_handler",
    "range_handler",
    "update_handler",
    "delete_reading_handler",
    "analytics_handler",
    "share_handler",
    "revoke_share_handler",
    "clear_data_handler",
]
