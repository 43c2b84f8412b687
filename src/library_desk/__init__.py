"""
Library Desk MCP Server Package.

An MCP (Model Context Protocol) server for the circulation desk of a library
or bookstore: checkout, return, renewal and late fees.

Key Components:
- models: Pydantic models for data validation and serialization
- database: SQLAlchemy tables, sessions and repositories
- circulation: borrowing rules and the checkout / return / renewal workflows
- config: Configuration management with pydantic-settings
- resources: MCP resources (read-only views)
- tools: MCP tools (operations with side effects)
"""

__version__ = "0.1.0"

from . import database

__all__ = [
    "__version__",
    "database",
]
