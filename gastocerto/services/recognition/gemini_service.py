"""
Document Recognition using Gemini

DESIGN DECISION: One multimodal call per document. Gemini gets the image
and a short instruction, and answers in JSON mode, so there is no OCR
text to post-process.

Two modes:
- single: a bill or receipt, one transaction (description, amount, due date)
- statement: a bank statement, every transaction with its kind

CRITICAL: Recognition output is untrusted. A statement with any malformed
item fails as a whole; we never hand a partial list to the review step.
No retries here - a failure is reported and the upload ends.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError as PydanticValidationError

from gastocerto.config import get_settings
from gastocerto.models.transaction import (
    TransactionEntry,
    TransactionKind,
    TransactionRecord,
)
from gastocerto.services.recognition.interface import (
    RecognitionFailure,
    RecognitionServiceInterface,
)


logger = structlog.get_logger("gastocerto.recognition")


NOT_FOUND_DESCRIPTION = "Não encontrado"

SINGLE_PROMPT = (
    "Analise este documento financeiro (boleto, nota). "
    "Extraia: 'description', 'amount' (valor), e 'date' "
    "(vencimento no formato AAAA-MM-DD). Se não achar, retorne null."
)

STATEMENT_PROMPT = (
    "Analise este extrato bancário. Extraia todas as transações, "
    "ignorando saldos. Para cada uma, retorne: 'description', "
    "'amount' (valor absoluto), 'date' (formato AAAA-MM-DD), e 'type' "
    "('income' para entradas/créditos, 'expense' para saídas/débitos). "
    "Retorne uma lista de objetos."
)


def _today():
    return datetime.now(timezone.utc).date()


def _decode(text: str, mode: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise RecognitionFailure(f"Unparsable recognition output: {e}", mode) from e


def parse_single_payload(payload: Any) -> Optional[TransactionEntry]:
    """
    Turn single-document JSON into an entry.

    Missing fields fall back to placeholders the user can correct:
    description "Não encontrado", amount 0, date today.
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise RecognitionFailure(
            f"Expected an object, got {type(payload).__name__}", "single"
        )

    try:
        return TransactionEntry(
            description=payload.get("description") or NOT_FOUND_DESCRIPTION,
            amount=payload.get("amount") or 0,
            date=payload.get("date") or _today(),
            kind=TransactionKind.EXPENSE,
            is_recurring=False,
        )
    except (PydanticValidationError, ValueError) as e:
        raise RecognitionFailure(f"Malformed recognition output: {e}", "single") from e


def _statement_magnitude(amount: Any) -> Any:
    """Statements sign debits; records keep the magnitude."""
    if isinstance(amount, bool):
        return amount
    if isinstance(amount, (int, float)):
        return abs(Decimal(str(amount)))
    if isinstance(amount, str):
        try:
            return abs(Decimal(amount.strip()))
        except InvalidOperation as e:
            raise ValueError(f"Amount is not a number: {amount!r}") from e
    return amount


def parse_statement_payload(payload: Any) -> list[TransactionRecord]:
    """Turn statement JSON into candidate records. All items must be valid."""
    if not isinstance(payload, list):
        raise RecognitionFailure(
            f"Expected a list, got {type(payload).__name__}", "statement"
        )

    candidates = []
    for position, item in enumerate(payload):
        if not isinstance(item, dict):
            raise RecognitionFailure(
                f"Item {position} is not an object", "statement"
            )
        try:
            amount = _statement_magnitude(item.get("amount"))
            candidates.append(TransactionRecord(
                description=item.get("description"),
                amount=amount,
                date=item.get("date"),
                kind=item.get("type") or item.get("kind") or TransactionKind.EXPENSE,
            ))
        except (PydanticValidationError, ValueError, TypeError) as e:
            raise RecognitionFailure(
                f"Item {position} is malformed: {e}", "statement"
            ) from e

    return candidates


class GeminiRecognitionService(RecognitionServiceInterface):
    """
    Recognition backed by a Gemini multimodal model.

    Args:
        model: Object with an async generate_content_async(contents).
               Defaults to a GenerativeModel built from GeminiSettings.
    """

    def __init__(self, model: Any = None):
        self._model = model if model is not None else self._configure_genai()

    def _configure_genai(self):
        settings = get_settings().gemini
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "response_mime_type": "application/json",
            }
        )

    async def _generate(self, prompt: str, document: bytes, mime_type: str, mode: str) -> Any:
        if not document:
            raise RecognitionFailure("Empty document", mode)

        contents = [prompt, {"mime_type": mime_type, "data": document}]
        try:
            response = await self._model.generate_content_async(contents)
            text = response.text
        except Exception as e:
            logger.error("recognition_call_failed", mode=mode, error=str(e))
            raise RecognitionFailure(f"Recognition service error: {e}", mode) from e

        return _decode(text, mode)

    async def recognize_single(
        self,
        document: bytes,
        mime_type: str,
    ) -> Optional[TransactionEntry]:
        payload = await self._generate(SINGLE_PROMPT, document, mime_type, "single")
        entry = parse_single_payload(payload)
        logger.info("single_recognized", found=entry is not None)
        return entry

    async def recognize_statement(
        self,
        document: bytes,
        mime_type: str,
    ) -> list[TransactionRecord]:
        payload = await self._generate(STATEMENT_PROMPT, document, mime_type, "statement")
        candidates = parse_statement_payload(payload)
        logger.info("statement_recognized", candidate_count=len(candidates))
        return candidates
