"""
sqlmoose Test Suite.

This package contains:
- unit/: Unit tests (compilers, codec, schema; recording executor)
- integration/: End-to-end tests against an in-memory SQLite database
"""
