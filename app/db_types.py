"""Database-agnostic type definitions for SQLAlchemy models.

Every model uses these so the same tables work on PostgreSQL in
production and SQLite in development and tests.
"""
from sqlalchemy import JSON, Numeric, Uuid

# Plain JSON (not JSONB) so SQLite can store the activity log payloads
JSONType = JSON

# Native UUID on PostgreSQL, CHAR(32) elsewhere
UUIDType = Uuid

# Monetary amounts: fares, cash-on-delivery amounts, order totals
MoneyType = Numeric(12, 2)
