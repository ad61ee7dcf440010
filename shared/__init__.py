"""
Shared utilities for the CenterPoint Connect resilience layer.

This package aggregates common building blocks consumed by the connect
service:

- config: Resolved configuration via pydantic-settings
- logging: Structured logging with token masking and trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry helpers layered above HTTP dispatch
- security: Token masking and token security validation

Do not import from service_* packages into shared/.
"""
