"""Gathering event logs, splitting the block range when a node refuses it."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from .types import FilterQuery, Header, Log

_logger = logging.getLogger(__name__)

_RANGE_TOO_WIDE_MESSAGES = (
    "query returned more than 10000 results",
    "eth_getLogs and eth_newFilter are limited to a 10,000 blocks range",
    "block range is too wide",
    "exceed maximum block range",
)


class _LogSource(Protocol):
    def filter_logs(self, query: FilterQuery) -> Sequence[Log]: ...

    def header_by_number(self, number: int | None) -> Header: ...


def should_do_binary_search(error: BaseException) -> bool:
    """Tell whether a node error means the block range has to be split."""
    text = str(error)
    return any(message in text for message in _RANGE_TOO_WIDE_MESSAGES)


def filter_logs(
    client: _LogSource,
    query: FilterQuery,
    current_block_height: int | None,
    reverse_order: bool,
    callback: Callable[[list[Log]], bool],
) -> bool:
    """Fetch the logs matching a query and hand them, newest first, to a callback.

    When the node reports that the block range is too wide, the range is
    halved and both halves are searched recursively; with ``reverse_order``
    the later half goes first. Searching stops as soon as the callback
    returns true, and that result is returned.
    """
    _logger.debug(
        "filtering logs: current block height %s, query %s",
        current_block_height,
        query,
    )

    if current_block_height is None:
        current_block_height = client.header_by_number(None).number

    if query.block_hash is None:
        if query.to_block is None:
            query = query.replace(to_block=current_block_height)
        if query.from_block is None:
            query = query.replace(from_block=0)

    try:
        logs = list(client.filter_logs(query))
    except Exception as exc:
        if query.block_hash is not None or not should_do_binary_search(exc):
            raise
        return _search_halves(client, query, current_block_height, reverse_order, callback)

    if not logs:
        return False
    logs.reverse()
    return bool(callback(logs))


def _search_halves(
    client: _LogSource,
    query: FilterQuery,
    current_block_height: int,
    reverse_order: bool,
    callback: Callable[[list[Log]], bool],
) -> bool:
    assert query.from_block is not None and query.to_block is not None
    mid = query.from_block + (query.to_block - query.from_block) // 2
    halves = [query.replace(to_block=mid), query.replace(from_block=mid + 1)]
    if reverse_order:
        halves.reverse()

    for half in halves:
        if filter_logs(client, half, current_block_height, reverse_order, callback):
            return True
    return False