"""Workspace access control and invitation engine for QAHub."""

__version__ = "0.1.0"
