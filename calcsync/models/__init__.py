"""ORM Models: SQLAlchemy declarative models for users and calculations.

Invariants:
    - All models inherit from Base (db/base.py)
    - Calculation rows are never physically deleted (is_active flag only)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from calcsync.models.user import User  # noqa: F401
from calcsync.models.calculation import Calculation  # noqa: F401
