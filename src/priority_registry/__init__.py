"""Priority registry — first-to-file records for invention digests."""

__version__ = "0.1.0"
