"""StakeHub - community stake pools with consensus-gated, scheduled market locking."""

__version__ = "0.1.0"
