"""Pick submission and history."""

from venuepredict.picks.engine import calculate_points, list_user_picks, submit_pick

__all__ = ["calculate_points", "list_user_picks", "submit_pick"]
