"""
Shared error handling package.

Translates custody domain errors into consistent JSON responses.
"""
