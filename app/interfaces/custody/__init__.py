"""
Interfaces for the custody bounded context.

FastAPI router, Pydantic schemas and the dependency providers
that wire repository adapters into use cases.
"""
