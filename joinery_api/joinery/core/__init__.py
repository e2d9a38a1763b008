"""
Core application utilities for settings, logging, errors and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Structured logging with request correlation ids
- The service error taxonomy mapped to HTTP responses
- Dependency helpers (DB session, authenticated staff user)
"""
