"""Pydantic schemas for the booking API."""
