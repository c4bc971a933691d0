"""
Document Upload

Sends a scanned document to the recognition service and routes the
result into the ledger:
- single document → one entry through the duplicate confirmation
- bank statement → a review plan for the user to select from

One upload at a time per uploader. The processing flag is cleared in
every outcome, including failures.
"""

from typing import Optional

from gastocerto.audit import create_correlation_id
from gastocerto.config import get_settings
from gastocerto.engine import (
    InvalidTransitionError,
    SingleEntryConfirmation,
    StatementImportPlan,
)
from gastocerto.orchestrator import HouseholdLedger
from gastocerto.services.recognition import (
    RecognitionFailure,
    RecognitionServiceInterface,
)
from gastocerto.validation import ValidationError


class UploadInProgressError(Exception):
    """Another upload is still being processed."""
    pass


class DocumentUploader:
    """
    Upload gate in front of the recognition service.

    Args:
        recognition_service: Extracts candidates from a document
        ledger: Receives the recognized candidates
        max_upload_bytes: Largest accepted document (AppSettings default)
    """

    def __init__(
        self,
        recognition_service: RecognitionServiceInterface,
        ledger: HouseholdLedger,
        max_upload_bytes: Optional[int] = None,
    ):
        self._recognition_service = recognition_service
        self._ledger = ledger
        self._max_upload_bytes = max_upload_bytes or get_settings().app.max_upload_size_bytes
        self._is_processing = False

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    def _begin(self, document: bytes) -> None:
        if self._is_processing:
            raise UploadInProgressError("A document is already being processed")
        if len(document) > self._max_upload_bytes:
            raise ValidationError.single(
                field="document",
                issue_type="too_large",
                message=(
                    f"Document is {len(document)} bytes, "
                    f"the limit is {self._max_upload_bytes}"
                ),
                suggested_fix="Upload a smaller or lower resolution image",
            )
        self._is_processing = True

    async def _report_failure(self, mode: str, error: RecognitionFailure, correlation_id) -> None:
        await self._ledger.audit_logger.log_recognition_failed(
            household_id=self._ledger.household_id,
            mode=mode,
            error_message=str(error),
            correlation_id=correlation_id,
        )

    async def scan_single(
        self,
        document: bytes,
        mime_type: str,
    ) -> SingleEntryConfirmation:
        """
        Recognize a bill or receipt and submit it as an entry.

        The entry goes through the same duplicate confirmation as a typed
        one; check the returned confirmation's state.

        Raises:
            UploadInProgressError: If another upload is in flight
            InvalidTransitionError: If an entry is still awaiting confirmation
            RecognitionFailure: If nothing usable was recognized
        """
        pending = self._ledger.pending_confirmation
        if pending is not None:
            # The held entry must be decided first.
            raise InvalidTransitionError("scan a document", pending.state)
        self._begin(document)
        correlation_id = create_correlation_id()
        try:
            try:
                entry = await self._recognition_service.recognize_single(document, mime_type)
                if entry is None:
                    raise RecognitionFailure("No transaction found in the document", "single")
            except RecognitionFailure as e:
                await self._report_failure("single", e, correlation_id)
                raise

            await self._ledger.audit_logger.log_recognition_completed(
                household_id=self._ledger.household_id,
                mode="single",
                candidate_count=1,
                correlation_id=correlation_id,
            )
            return await self._ledger.submit_entry_model(entry, correlation_id=correlation_id)
        finally:
            self._is_processing = False

    async def scan_statement(
        self,
        document: bytes,
        mime_type: str,
    ) -> StatementImportPlan:
        """
        Recognize a bank statement and open it for review.

        Nothing is written until the ledger's commit_import().

        Raises:
            UploadInProgressError: If another upload is in flight
            RecognitionFailure: If the statement could not be read
        """
        self._begin(document)
        correlation_id = create_correlation_id()
        try:
            try:
                candidates = await self._recognition_service.recognize_statement(
                    document, mime_type
                )
            except RecognitionFailure as e:
                await self._report_failure("statement", e, correlation_id)
                raise

            await self._ledger.audit_logger.log_recognition_completed(
                household_id=self._ledger.household_id,
                mode="statement",
                candidate_count=len(candidates),
                correlation_id=correlation_id,
            )
            return self._ledger.plan_statement(candidates, correlation_id=correlation_id)
        finally:
            self._is_processing = False
