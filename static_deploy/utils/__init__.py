"""
Shared utilities for static-deploy.

- logging: console/JSON logging with correlation IDs
- config / config_loader: configuration layers, validation and RunConfig
- errors: exception hierarchy
- metrics: Prometheus collectors
"""

from static_deploy.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
