"""Maintenance client for a self-hosted container image registry."""

__version__ = "0.1.0"
