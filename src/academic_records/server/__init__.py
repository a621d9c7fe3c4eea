"""HTTP server mode for academic-records.

Provides a lightweight stdlib-based HTTP API for login, token refresh and the
activity reports, without requiring any additional web framework.
"""
from __future__ import annotations

from academic_records.server.app import RecordsRequestHandler, create_server, run_server

__all__ = ["RecordsRequestHandler", "create_server", "run_server"]
