"""Prometheus metrics for chainstats."""
