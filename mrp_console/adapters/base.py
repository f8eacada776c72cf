"""Abstract base class for ERP record backends.

Swap ERPAI for another hosted backend (or an in-memory fake) by
implementing this interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from mrp_console.schemas.records import RecordPage


class ERPAIError(Exception):
    """Non-2xx response from the ERPAI API."""

    def __init__(self, method: str, path: str, status: int, body: str = "") -> None:
        self.method = method
        self.path = path
        self.status = status
        self.body = body
        super().__init__(f"API {method} {path} failed: {status} {body}".rstrip())


class TableNotFoundError(LookupError):
    """The app has no table with the requested name."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f'Table "{table}" not found')


class RecordNotFoundError(LookupError):
    """The table has no record with the requested id."""

    def __init__(self, table: str, record_id: str) -> None:
        self.table = table
        self.record_id = record_id
        super().__init__(f'Record "{record_id}" not found in "{table}"')


class RecordBackend(ABC):
    """Contract that any record backend must satisfy."""

    @abstractmethod
    async def list_records(
        self,
        table: str,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> RecordPage:
        """Return one page of friendly records."""

    @abstractmethod
    async def get_record(self, table: str, record_id: str) -> dict[str, Any]:
        """Return a single friendly record."""

    @abstractmethod
    async def create_record(self, table: str, data: dict[str, Any]) -> Any:
        """Create a record from friendly field values."""

    @abstractmethod
    async def update_record(self, table: str, record_id: str, data: dict[str, Any]) -> Any:
        """Update a record from friendly field values."""

    @abstractmethod
    async def delete_record(self, table: str, record_id: str) -> None:
        """Delete a record."""

    @abstractmethod
    async def count_records(self, table: str) -> int:
        """Return the total record count of a table."""

    async def list_all_records(self, table: str, page_size: int = 100) -> list[dict[str, Any]]:
        """Page through a whole table."""
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            result = await self.list_records(table, page, page_size)
            records.extend(result.data)
            if len(records) >= result.total_count or len(result.data) < page_size:
                return records
            page += 1
