"""Canonical Planner Error Types.

Generation failures (invalid JSON, schema violations, provider outages) are
never raised to callers; they travel as tagged results and end in the
fallback planner. The exceptions below are reserved for contract breaches.

Standard error codes:
- INVALID_SPRINT_PLAN: A plan violates the sprint plan schema
- INVALID_FALLBACK_PLAN: The heuristic planner produced a non-conformant plan
- INVALID_EXPANSION: A merged expansion violates the schema
"""


class PlannerError(Exception):
    """Base exception for sprint planner errors."""

    pass


class PlanSchemaError(PlannerError):
    """Raised when a plan that must be valid is not.

    Attributes:
        code: Error code (e.g., "INVALID_SPRINT_PLAN", "INVALID_FALLBACK_PLAN")
        details: List of "<path>: <message>" strings, one per violated constraint
    """

    def __init__(self, code: str, details: list[str]):
        self.code = code
        self.details = details
        super().__init__(f"{code}: {details}")


class UnsupportedProviderError(PlannerError, ValueError):
    """Raised when the configured remote planner provider is unknown."""

    pass
