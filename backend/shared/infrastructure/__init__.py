"""
Infrastructure module: database sessions and request correlation.

Provides:
- Database engine, sessions and transactions (db.py)
- Correlation IDs for logs and audit entries (correlation.py)

Submodules are imported directly so that importing correlation helpers
does not create the database engine.
"""
