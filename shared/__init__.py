"""
Shared utilities for the web chat settings service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators for remote calls
- circuit_breaker: Resilient external call protection
- base_service: FastAPI application shell

Do not import from service_* packages into shared/.
"""
