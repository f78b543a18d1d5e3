"""Fuel-charge storage."""
