"""Clients for external services."""

from healthcheck.tools.email_client import EmailClient, get_email_client

__all__ = ["EmailClient", "get_email_client"]
