"""Warden: account management and session security service."""
