"""Synthetic stock price streaming service."""
