"""
Model registry.

Importing this module registers every table on ``Base.metadata`` (used by
Alembic autogenerate and by tests that need the full mapper graph).
"""

from grantflow.modules.fund_applications.models import FundApplication, JuryRating
from grantflow.modules.funds.models import Fund, FundConcretization, JuryCriterion, Process
from grantflow.modules.projects.models import Project, ProjectMembership
from grantflow.modules.users.models import User, UserObjectRole
from grantflow.modules.validations.models import Validation

__all__ = [
    "Fund",
    "FundApplication",
    "FundConcretization",
    "JuryCriterion",
    "JuryRating",
    "Process",
    "Project",
    "ProjectMembership",
    "User",
    "UserObjectRole",
    "Validation",
]
