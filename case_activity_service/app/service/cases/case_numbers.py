from case_activity_service.app.models.case_db import CASE_TYPE_PREFIXES, CaseType


def case_number_prefix(case_type: CaseType) -> str:
    return CASE_TYPE_PREFIXES[CaseType(case_type)]


def format_case_number(year: int, prefix: str, sequence: int) -> str:
    """2025, 'PI', 7 -> '2025-PI-0007'."""
    return f"{year}-{prefix}-{sequence:04d}"
