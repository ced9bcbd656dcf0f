"""Storefront pricing session: live price reconciliation for a package view."""
