"""
Sales CRM Reporting Backend Package.

FastAPI service layer for the sales-team CRM reporting engine. Resolves which
customer records a caller may see from the organization's reporting lines and
aggregates them into role-scoped performance tables.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, security, and dependencies
    - models: Pydantic schemas and enums
    - services: Visibility, metric extraction, aggregation, and report assembly
"""

__version__ = "1.0.0"
