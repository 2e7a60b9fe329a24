"""
Application layer for the custody bounded context.

Use cases coordinate validators and the repository port to fulfill
business operations. No framework or infrastructure imports allowed.
"""
