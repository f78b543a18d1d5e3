"""Odometer storage contract and validation."""
