"""
Core utilities shared across the FuelGo API.

This package hosts:
- configuration helpers (env vars)
- logging setup
- adapters for external collaborators: SMTP mailer and identity provider

Services depend on these primitives and receive concrete instances from the
application factory instead of building global clients themselves.
"""
