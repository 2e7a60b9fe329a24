"""
Shared module package.

Contains cross-cutting concerns used by the custody context:
error-to-HTTP mapping, security middleware, rate limiting and
logging configuration.
"""
