"""Goods management service: storage, caching, event logging and a WSGI API."""

__version__ = "0.1.0"