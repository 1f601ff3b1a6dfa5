"""Market catalog: cached snapshot of open markets, listing and broad categories."""

from venuepredict.catalog.cache import MarketCatalog
from venuepredict.catalog.listing import ListingParams, MarketListing, build_listing

__all__ = ["MarketCatalog", "ListingParams", "MarketListing", "build_listing"]
