"""Trippat booking pricing backend."""
