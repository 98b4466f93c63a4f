"""
In-memory cache of the Camps and Categories tables
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

from pydantic import ValidationError

from campfinder.config import CAMPS_TABLE, CATEGORIES_TABLE, logger
from campfinder.models.camp import Camp, Category

T = TypeVar("T")


class RecordSource(Protocol):
    async def list_records(self, table: str) -> List[Dict[str, Any]]:
        ...


def parse_records(records: List[Dict[str, Any]], parser: Callable[[Dict[str, Any]], T]) -> List[T]:
    """
    Parse raw records, skipping the ones that fail validation
    """
    parsed: List[T] = []
    for record in records:
        try:
            parsed.append(parser(record))
        except ValidationError as e:
            logger.warning(f"Skipping record {record.get('id')}: {e.error_count()} invalid field(s)")
        except (TypeError, AttributeError, ValueError) as e:
            logger.warning(f"Skipping malformed record {record!r:.80}: {e}")
    return parsed


class RecordCache:
    """
    Holds the last successful snapshot of camps and categories.

    A failed fetch returns an empty list for that call and leaves the previous
    snapshot in place. Concurrent callers for the same table share one fetch.
    """
    def __init__(self, source: RecordSource):
        self.source = source
        self._camps: Optional[List[Camp]] = None
        self._categories: Optional[List[Category]] = None
        self._pending: Dict[str, asyncio.Task] = {}

    async def get_camps(self, force_refresh: bool = False) -> List[Camp]:
        if self._camps is not None and not force_refresh:
            return self._camps

        camps = await self._shared_fetch(CAMPS_TABLE, Camp.from_record)
        if camps is None:
            return []
        self._camps = camps
        return camps

    async def get_categories(self) -> List[Category]:
        if self._categories is not None:
            return self._categories

        categories = await self._shared_fetch(CATEGORIES_TABLE, Category.from_record)
        if categories is None:
            return []
        self._categories = categories
        return categories

    async def get_camp(self, camp_id: str) -> Optional[Camp]:
        for camp in await self.get_camps():
            if camp.id == camp_id:
                return camp
        return None

    def invalidate(self):
        """
        Drop both snapshots so the next read fetches again
        """
        self._camps = None
        self._categories = None
        logger.info("Record cache invalidated")

    async def _shared_fetch(self, table: str, parser: Callable[[Dict[str, Any]], T]) -> Optional[List[T]]:
        task = self._pending.get(table)
        if task is None:
            task = asyncio.ensure_future(self._fetch(table, parser))
            self._pending[table] = task
        return await asyncio.shield(task)

    async def _fetch(self, table: str, parser: Callable[[Dict[str, Any]], T]) -> Optional[List[T]]:
        try:
            records = await self.source.list_records(table)
            parsed = parse_records(records, parser)
            logger.success(f"Loaded {len(parsed)} {table.lower()} into cache")
            return parsed
        except Exception as e:
            logger.error(f"Error fetching {table}: {e}")
            return None
        finally:
            self._pending.pop(table, None)
