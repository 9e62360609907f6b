"""Middleware and error responses for the host application."""
