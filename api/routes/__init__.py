"""Versioned REST routers."""
