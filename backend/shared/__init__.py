"""
Shared module for code common to the REST API and the CLI.

STRUCTURE:
- shared.security: Authentication
  - auth.py: JWT verification, current_user_context, require_roles

- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Roles, session/order/item statuses

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Shared Pydantic schemas (inbound session state, results)

IMPORT EXAMPLES:
    from shared.security.auth import current_user_context, require_roles
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import SessionStatus, OrderItemStatus
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
