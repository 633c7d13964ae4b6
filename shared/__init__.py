"""
Shared utilities for the Storefront services.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request and trace correlation
- metrics: Prometheus metrics helpers, including read-through cache metrics
- errors: Canonical error types and responses
- base_service: FastAPI application shell with health and metrics routes
- test_helpers: Document factories for tests

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
