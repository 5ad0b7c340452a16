"""Routable request handlers."""
