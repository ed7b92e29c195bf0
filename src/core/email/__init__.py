"""Outbound email for daily work reports.

This package provides:
- SMTP: A hand-built SMTP submission client (AUTH LOGIN, implicit TLS)
- Services: Report sending wired from configuration and keyring

Usage Examples
----------------

Send a daily report with the configured account:
    >>> from src.core.email.services.send_factory import ReportSendServiceFactory
    >>>
    >>> service = await ReportSendServiceFactory.create()
    >>> result = await service.send_report(report)
    >>> print(result.success, result.message)

Check server settings from a settings screen:
    >>> service = await ReportSendServiceFactory.create(require_enabled=False)
    >>> result = await service.test_connection()

Notes
-----
- All operations are asynchronous and require 'await'
- Each call opens and closes its own connection; nothing is pooled
- Nothing is retried; failures come back as typed GlanceError subclasses
"""

from .smtp import SMTPClient, SMTPCredentials

__all__ = [
    "SMTPClient",
    "SMTPCredentials",
]
