"""Consensus-gated lock execution: requester, workflow, scheduler."""
