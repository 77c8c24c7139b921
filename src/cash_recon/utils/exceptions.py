"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class OrderParseError(ReconciliationError):
    """Error parsing an orders CSV file."""

    pass


class CashReportParseError(ReconciliationError):
    """Error parsing a cash reports CSV file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ValidationError(ReconciliationError):
    """Data validation error."""

    pass


class InvalidDateRangeError(ValidationError):
    """Start date of a range falls after its end date."""

    pass


class MalformedClaimError(ValidationError):
    """A cash report's claimed order list cannot be parsed."""

    def __init__(self, report_id: str, reason: str):
        self.report_id = report_id
        self.reason = reason
        super().__init__(f"Report {report_id}: malformed order_ids ({reason})")


class AmbiguousClaimError(ValidationError):
    """More than one cash report claims the same order."""

    def __init__(self, claims: dict[str, list[str]]):
        self.claims = claims
        detail = "; ".join(
            f"{order_id} claimed by {', '.join(report_ids)}"
            for order_id, report_ids in claims.items()
        )
        super().__init__(f"Ambiguous report claims: {detail}")


class LedgerWriteError(ReconciliationError):
    """Error replacing reconciliation records; the ledger was rolled back."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
