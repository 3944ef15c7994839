"""Ledger gateway: read/write boundary to the market contracts."""

from stakehub.ledger.base import REQUIRED_MARKET_FIELDS, LedgerGateway, MarketReads, ReadResult

__all__ = ["LedgerGateway", "MarketReads", "ReadResult", "REQUIRED_MARKET_FIELDS"]
