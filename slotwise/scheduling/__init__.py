"""Availability core: credential resolution, busy-time aggregation, slot engine, reservation ledger."""
