from collections import Counter
from typing import List

from app.models.enums import ImportErrorType, UpsertAction
from app.models.schemas import DetailedError, ImportReport, ImportSummary, RowOutcome


def summarize(outcomes: List[RowOutcome]) -> ImportSummary:
    total_rows = len(outcomes)
    successful_rows = sum(1 for o in outcomes if o.success)
    created = sum(1 for o in outcomes if o.success and o.result and o.result.action == UpsertAction.CREATED)
    updated = sum(1 for o in outcomes if o.success and o.result and o.result.action == UpsertAction.UPDATED)
    success_rate = round(successful_rows / total_rows * 100, 1) if total_rows else 0.0
    return ImportSummary(
        total_rows=total_rows,
        successful_rows=successful_rows,
        failed_rows=total_rows - successful_rows,
        created_prices=created,
        updated_prices=updated,
        success_rate=success_rate,
    )


class ReportBuilder:
    """Aggregates row outcomes into the import report, attaching suggestions to the first errors."""

    def __init__(self, suggestion_engine=None, detailed_errors_limit: int = 10):
        self.suggestion_engine = suggestion_engine
        self.detailed_errors_limit = detailed_errors_limit

    def build(self, outcomes: List[RowOutcome]) -> ImportReport:
        failures = [o for o in outcomes if not o.success]
        errors_by_type = Counter(
            (o.error_type or ImportErrorType.UNEXPECTED_ERROR).value for o in failures
        )

        shown = failures[:self.detailed_errors_limit]
        suggestions = self._suggestions_for(shown)
        detailed_errors = [
            DetailedError(
                line=o.line,
                error=o.error or "",
                error_type=o.error_type or ImportErrorType.UNEXPECTED_ERROR,
                data=o.data,
                suggestions=hints,
            )
            for o, hints in zip(shown, suggestions)
        ]

        return ImportReport(
            summary=summarize(outcomes),
            errors_by_type=dict(errors_by_type),
            detailed_errors=detailed_errors,
        )

    def _suggestions_for(self, failures: List[RowOutcome]) -> List[List[str]]:
        if self.suggestion_engine is None:
            return [[] for _ in failures]
        return self.suggestion_engine.suggest_many(
            [(o.error_type or ImportErrorType.UNEXPECTED_ERROR, o.data) for o in failures]
        )
