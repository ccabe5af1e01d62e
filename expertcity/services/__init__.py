# Services package init
"""
Expert In The City Backend — Services Layer
============================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services take an AsyncSession plus plain arguments, enforce ownership
       and business rules, and return Pydantic response models. Routes only
       translate HTTP into these calls.

Service Inventory:
    - ReputationService: recomputes an expert's rating, progress level and
      badges from their reviews; announces newly earned badges
    - ReviewService: submit / update / delete / list session reviews, each
      mutation followed by a reputation recompute in the same transaction
    - NotificationService: best-effort notification inserts plus the
      recipient-facing list / mark-read / delete operations

Transaction boundary:
    Services flush but never commit. `get_db_session` commits once the
    route returns, so a review write and its recompute land together or
    not at all.
"""
