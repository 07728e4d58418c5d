from __future__ import annotations

from dataclasses import dataclass


class Plan:
    """Subscription tiers a school can buy."""

    BASIC = 'basic'
    INTERMEDIATE = 'intermediate'
    PRO = 'pro'

    ALL = (BASIC, INTERMEDIATE, PRO)
    DEFAULT = BASIC


class SubdomainType:
    """Page variants a subdomain renders as.

    Anything outside TEACHER/STUDENT/PUBLIC is stored as given and rendered
    through the DEFAULT page.
    """

    TEACHER = 'teacher'
    STUDENT = 'student'
    PUBLIC = 'public'
    DEFAULT = 'default'

    KNOWN = (TEACHER, STUDENT, PUBLIC)


@dataclass(frozen=True)
class Feature:
    key: str
    label: str
    min_plan: str


FEATURES: tuple[Feature, ...] = (
    Feature('attendance', 'Attendance', Plan.INTERMEDIATE),
    Feature('reports', 'Reports', Plan.INTERMEDIATE),
    Feature('analytics', 'Analytics', Plan.PRO),
)


def plan_rank(plan: str | None) -> int:
    try:
        return Plan.ALL.index((plan or '').lower())
    except ValueError:
        return 0


def plan_features(plan: str | None) -> dict[str, bool]:
    """Map each dashboard feature key to whether `plan` unlocks it."""
    rank = plan_rank(plan)
    return {feature.key: rank >= plan_rank(feature.min_plan) for feature in FEATURES}


def render_type(subdomain_type: str | None) -> str:
    """Resolve a stored subdomain type to the page variant that renders it."""
    value = (subdomain_type or '').strip().lower()
    return value if value in SubdomainType.KNOWN else SubdomainType.DEFAULT
