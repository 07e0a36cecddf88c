"""Recommendation aggregation and incremental delivery pipeline."""
