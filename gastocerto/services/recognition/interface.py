"""
Recognition Service Interface

The recognition service is a black box: a document image goes in,
structured candidates come out. Nothing it returns is persisted here;
candidates always pass through the duplicate check and the user's
review first.
"""

from abc import ABC, abstractmethod
from typing import Optional

from gastocerto.models.transaction import TransactionEntry, TransactionRecord


class RecognitionServiceInterface(ABC):

    @abstractmethod
    async def recognize_single(
        self,
        document: bytes,
        mime_type: str,
    ) -> Optional[TransactionEntry]:
        """
        Extract one transaction from a bill or receipt.

        Returns:
            The recognized entry, or None if the document holds nothing
            recognizable

        Raises:
            RecognitionFailure: Service unreachable or malformed output
        """
        pass

    @abstractmethod
    async def recognize_statement(
        self,
        document: bytes,
        mime_type: str,
    ) -> list[TransactionRecord]:
        """
        Extract every transaction from a bank statement.

        Returns:
            Unpersisted candidate records, in statement order

        Raises:
            RecognitionFailure: Service unreachable or malformed output
        """
        pass


class RecognitionFailure(Exception):
    """Recognition could not produce usable candidates."""

    def __init__(self, message: str, mode: str = "single"):
        self.mode = mode
        super().__init__(message)
