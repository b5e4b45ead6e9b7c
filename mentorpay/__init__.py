"""Entitlement and marketplace payments for the mentorship platform."""
