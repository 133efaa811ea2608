"""Utility functions for chatbudget."""

from chatbudget.utils.helpers import current_time_millis, ensure_dir, safe_filename

__all__ = ["current_time_millis", "ensure_dir", "safe_filename"]
