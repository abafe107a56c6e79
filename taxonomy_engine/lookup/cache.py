"""Per-run memo of shortcode, custom-code and template lookups."""

import asyncio
from typing import Any, Awaitable, Callable, Hashable


class MemoTable:
    """Key → value memo where a miss triggers exactly one fetch.

    Concurrent callers asking for the same missing key share the
    in-flight fetch. A fetched ``None`` is memoized like any other value.
    """

    def __init__(self):
        self._values: dict[Hashable, Any] = {}
        self._pending: dict[Hashable, asyncio.Future] = {}
        self.fetch_count = 0

    def __contains__(self, key: Hashable) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def get(self, key: Hashable, default=None):
        return self._values.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        self._values[key] = value

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        if key in self._values:
            return self._values[key]
        if key in self._pending:
            return await self._pending[key]

        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        self.fetch_count += 1
        try:
            value = await fetch()
        except BaseException as e:
            future.set_exception(e)
            # Waiters re-raise; mark retrieved so an unobserved future stays quiet
            future.exception()
            raise
        else:
            self._values[key] = value
            future.set_result(value)
            return value
        finally:
            del self._pending[key]


class LookupCache:
    """All lookups memoized for one propagation run. No eviction."""

    def __init__(self):
        self.shortcodes = MemoTable()
        self.custom_codes = MemoTable()
        self.templates = MemoTable()

    @staticmethod
    def custom_code_key(client_id: str, shortcode_id: str) -> tuple[str, str]:
        return (client_id, shortcode_id)

    @staticmethod
    def template_key(client_id: str, taxonomy_id: str) -> tuple[str, str]:
        return (client_id, taxonomy_id)

    @property
    def fetch_count(self) -> int:
        return (self.shortcodes.fetch_count + self.custom_codes.fetch_count
                + self.templates.fetch_count)
