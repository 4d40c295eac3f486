"""
Shared module for cross-cutting concerns of the entity access layer.

STRUCTURE:
- shared.infrastructure: Database and request correlation
  - db.py: SQLAlchemy engine and sessions, safe_commit()
  - correlation.py: request ID context variable and logging filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Roles, operations, RLS policies, limits

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: SQL identifier and search term validation

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, RLSPolicies
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
