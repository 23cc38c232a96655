"""
Transaction/retry control around one import run.

All rows of a file are processed inside a single transaction. The error-rate
threshold is checked once, after every row has been attempted; crossing it
rolls the whole transaction back. Contention errors (deadlock, lock wait
timeout) retry the whole operation with linear backoff.
"""
import time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_incrementing

from app.core.logging import ImportLogger
from app.exceptions import PriceImportError, RollbackThresholdExceeded, TransientContentionError, UnexpectedError
from app.models.enums import TransactionState
from app.models.schemas import RowOutcome

RowBatch = Callable[[Session], List[RowOutcome]]


def compute_error_rate(outcomes: List[RowOutcome]) -> float:
    total = len(outcomes)
    if total == 0:
        return 0.0
    errors = sum(1 for outcome in outcomes if not outcome.success)
    return errors / total


class ImportTransactionController:
    """
    State machine: idle -> in_transaction -> committed | rolled_back | failed.

    One controller instance drives one run.
    """

    def __init__(
        self,
        store,
        logger: ImportLogger,
        rollback_error_rate: float = 0.5,
        max_retries: int = 3,
        backoff_seconds: float = 0.1,
        isolation_level: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.logger = logger
        self.rollback_error_rate = rollback_error_rate
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.isolation_level = isolation_level
        self.sleep = sleep
        self.state = TransactionState.IDLE
        self.attempts = 0

    def run(self, process_rows: RowBatch) -> List[RowOutcome]:
        """
        Run ``process_rows`` in one transaction and return its outcomes once committed.

        Raises RollbackThresholdExceeded (nothing persisted), TransientContentionError
        when retries are exhausted, or UnexpectedError for anything else.
        """
        if self.state.is_terminal():
            raise RuntimeError(f"Transaction controller already finished ({self.state.value})")

        retryer = Retrying(
            retry=retry_if_exception(self._is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            outcomes = retryer(self._run_once, process_rows)
        except RollbackThresholdExceeded as e:
            self.state = TransactionState.ROLLED_BACK
            self.logger.event(
                "pricing_error",
                "Import rollback triggered",
                error_rate=round(e.error_rate, 3),
                threshold=e.threshold,
                total_count=len(e.outcomes),
            )
            raise
        except PriceImportError:
            self.state = TransactionState.FAILED
            raise
        except Exception as e:
            self.state = TransactionState.FAILED
            if self.store.is_transient_contention(e):
                raise TransientContentionError(
                    f"Storage contention persisted after {self.attempts} attempts: {e}",
                    attempts=self.attempts,
                    original_exception=e,
                ) from e
            self.logger.error("Import transaction aborted: %s", e, exc_info=True)
            raise UnexpectedError(f"Unexpected error during import: {e}", original_exception=e) from e

        self.state = TransactionState.COMMITTED
        return outcomes

    def _run_once(self, process_rows: RowBatch) -> List[RowOutcome]:
        self.attempts += 1
        self.state = TransactionState.IN_TRANSACTION
        return self.store.with_transaction(
            self.isolation_level,
            lambda session: self._attempt(process_rows, session),
        )

    def _attempt(self, process_rows: RowBatch, session: Session) -> List[RowOutcome]:
        outcomes = process_rows(session)
        error_rate = compute_error_rate(outcomes)
        if error_rate > self.rollback_error_rate:
            # Roll back this run's own session, never a shared one.
            session.rollback()
            raise RollbackThresholdExceeded(error_rate, self.rollback_error_rate, outcomes)
        return outcomes

    def _is_retryable(self, error: BaseException) -> bool:
        return not isinstance(error, PriceImportError) and self.store.is_transient_contention(error)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self.logger.warning(
            "Transient contention on attempt %s, retrying in %.2fs: %s",
            retry_state.attempt_number,
            retry_state.next_action.sleep,
            retry_state.outcome.exception(),
        )
