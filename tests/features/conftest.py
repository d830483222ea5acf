"""Shared fixtures for BDD feature tests.

Feature steps reuse the stores, fake reader and orchestrator fixtures from
``tests/conftest.py``.
"""
