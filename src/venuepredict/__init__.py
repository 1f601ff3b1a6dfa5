"""venuepredict - venue trivia and prediction-market pick game backend."""

__version__ = "0.1.0"
