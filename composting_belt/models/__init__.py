"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Batch is the aggregate root; contributions, photos and events hang off batch_id

Design Decisions:
    - One file per entity
    - All models imported here so Base.metadata holds every table before
      create_all or an alembic autogenerate runs
"""

from composting_belt.models.facility import Facility  # noqa: F401
from composting_belt.models.batch import Batch  # noqa: F401
from composting_belt.models.contribution import Contribution  # noqa: F401
from composting_belt.models.photo import Photo  # noqa: F401
from composting_belt.models.batch_event import BatchEvent  # noqa: F401
