"""Audit tasks."""
