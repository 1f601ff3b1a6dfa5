"""Per-user sliding-window quotas."""

from venuepredict.quota.tracker import get_quota

__all__ = ["get_quota"]
