"""Hosted backend integrations."""
