"""
Core utilities shared across the MediKeep API.

This package hosts configuration, the error taxonomy, logging setup and the
cross-cutting adapters (mailer, rate limiting) that services depend on
instead of importing FastAPI or storage layers directly.
"""
