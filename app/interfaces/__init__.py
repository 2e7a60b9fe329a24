"""
Interfaces layer package.

FastAPI routers and Pydantic request/response schemas.
Routes build commands, call use cases and shape responses.
"""
