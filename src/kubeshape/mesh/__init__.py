"""Service mesh integrations."""
