"""
Fairway – SQLAlchemy ORM models package.

Imports all model classes so Alembic and the app can discover them
through a single ``from fairway.models import *`` import.
"""

from fairway.models.outing import Outing              # noqa: F401
from fairway.models.participant import Participant    # noqa: F401
from fairway.models.preference import Preference      # noqa: F401
from fairway.models.course import Course              # noqa: F401
from fairway.models.plan_card import PlanCard         # noqa: F401
from fairway.models.vote import Vote                  # noqa: F401
