"""
Infrastructure adapters for the custody bounded context.

Each adapter implements the CustodyServiceRepository port:
PostgreSQL for production, in-memory for tests and local runs.
"""
