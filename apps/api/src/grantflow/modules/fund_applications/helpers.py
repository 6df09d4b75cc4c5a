"""
Fund application helpers

Per-question validation of concretization answers and the submission
snapshot.
"""

import re
from datetime import datetime
from html import unescape
from uuid import UUID

from grantflow.modules.funds.models import Fund
from grantflow.modules.projects.models import PROFILE_FIELDS, Project

INVALID_CONCRETIZATION = "validate.fundApplication.invalidConcretization"
TOO_LONG = "validate.general.tooLong"

_TAG_RE = re.compile(r"<[^>]*>")

# Plan fields copied into the submission snapshot
PLAN_FIELDS = (
    "tasks",
    "work_packages",
    "outcome",
    "impact",
    "results",
    "target_groups",
    "utilization",
    "implementation_time",
)


def strip_html(value: str) -> str:
    """Text content of an HTML fragment."""
    return unescape(_TAG_RE.sub("", value))


def validate_concretizations(fund: Fund, answers: dict[str, str]) -> dict[str, list[str]]:
    """
    Check each answer against the fund's questions.

    Every key must be the id of one of the fund's questions, and the answer's
    text (HTML stripped) must fit the question's max_length. Violations are
    reported per key.

    Returns:
        Mapping of ``concretizations[<key>]`` to message keys, empty when valid
    """
    violations: dict[str, list[str]] = {}

    for key, answer in answers.items():
        path = f"concretizations[{key}]"
        try:
            question = fund.get_concretization(UUID(str(key)))
        except ValueError:
            question = None

        if question is None:
            violations[path] = [INVALID_CONCRETIZATION]
            continue

        if answer and len(strip_html(answer)) > question.max_length:
            violations[path] = [TOO_LONG]

    return violations


def build_submission_snapshot(
    project: Project,
    concretizations: dict,
    requested_funding: int | None,
    submitted_by: UUID,
    submitted_at: datetime,
) -> dict:
    """JSON-serializable record of what was submitted."""
    snapshot = {
        "projectId": str(project.id),
        "submissionDate": submitted_at.isoformat(),
        "submittedBy": str(submitted_by),
        "concretizations": dict(concretizations or {}),
        "requestedFunding": requested_funding,
    }
    for field in PROFILE_FIELDS + PLAN_FIELDS:
        snapshot[field] = getattr(project, field)
    return snapshot
