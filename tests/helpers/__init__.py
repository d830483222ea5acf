"""Shared test doubles and capture helpers."""
