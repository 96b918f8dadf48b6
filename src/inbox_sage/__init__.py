"""Inbox Sage: tiered email analysis and action-item extraction."""
