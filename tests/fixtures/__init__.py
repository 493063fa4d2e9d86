"""Test fixtures for RetinoForge unit and integration tests.

Fixtures:
    - small.yml: Minimal experiment that renders in well under a second
"""
