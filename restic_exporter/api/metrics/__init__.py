"""Metrics exposition and landing page resources."""
