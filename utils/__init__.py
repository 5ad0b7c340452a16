"""Helpers for the processes the frontend controls."""
