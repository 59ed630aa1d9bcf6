"""Development points to business-day estimates. Reference: 15 points = 10 business days."""
from intake_planner.schemas.project import PointsConversion

REFERENCE_POINTS = 15
REFERENCE_BUSINESS_DAYS = 10
BUSINESS_DAYS_PER_WEEK = 5
CONVERSION_TABLE_POINTS = (1, 2, 3, 4, 5, 10, 15, 20)


def points_to_days(points: int | None) -> float:
    if not points or points <= 0:
        return 0.0
    return points / REFERENCE_POINTS * REFERENCE_BUSINESS_DAYS


def estimated_time_label(points: int | None) -> str:
    """Days under a week ("1.3 days"), weeks otherwise ("2.0 weeks")."""
    if not points or points <= 0:
        return "n/a"
    days = points_to_days(points)
    if days < BUSINESS_DAYS_PER_WEEK:
        return f"{days:.1f} days"
    return f"{days / BUSINESS_DAYS_PER_WEEK:.1f} weeks"


def conversion_table() -> list[PointsConversion]:
    return [
        PointsConversion(points=p, days=points_to_days(p), label=estimated_time_label(p))
        for p in CONVERSION_TABLE_POINTS
    ]
