"""
Custody bounded context: domain layer.

This module contains all domain logic for custody services:
- Custody service and custodian entities
- Create/update validation rules
- The repository port the use cases depend on
"""
