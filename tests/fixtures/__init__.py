"""Reusable test doubles for the QuoteCore suite."""
