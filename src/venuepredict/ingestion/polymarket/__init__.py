"""Polymarket Gamma market source and normalizer."""

from venuepredict.ingestion.polymarket.gamma import GammaClient
from venuepredict.ingestion.polymarket.normalize import normalize_market

__all__ = ["GammaClient", "normalize_market"]
