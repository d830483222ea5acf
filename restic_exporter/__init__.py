"""Prometheus exporter for restic backup snapshot freshness."""

__version__ = "0.1.0"
