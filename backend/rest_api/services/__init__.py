"""
Services module for business logic.

- domain/: Application services for the floor (sessions, seats, waves,
  kitchen transitions, totals, closing, audit trail)

Usage:
    from rest_api.services.domain import SessionCloseService
    result = SessionCloseService(db, ctx).close_order_for_table(location_id, "T5")
"""
