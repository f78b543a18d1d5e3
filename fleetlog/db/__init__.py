"""Relational storage for FleetLog."""
