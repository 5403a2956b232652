"""Indicharts - indicator threshold alerts for market price bars."""

__version__ = "0.1.0"
