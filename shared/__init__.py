"""
Shared utilities for the laundromatzat portfolio backend.

This package aggregates common building blocks consumed by the API service
and the tool library:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI app skeleton (middleware, health, error handlers)

Any cross-package logic should live here to avoid import cycles. Do not
import from service_* or portfolio_tools into shared/.
"""
