"""Request hardening helpers."""
