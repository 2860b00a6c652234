# Copyright 2025 Hathor Labs
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Append-only event log shared by the sale and its token.

Events are the only history that tooling can read back. The airdrop snapshot
and the pending reservations report both page through this log from the
beginning, so entries are never edited or removed once a step completes.
"""

from typing import Any, NamedTuple, Optional

from tokensale.types import Address, Timestamp

DEFAULT_PAGE_SIZE = 1000


class Transfer(NamedTuple):
    sender: Address
    recipient: Address
    amount: int


class Approval(NamedTuple):
    owner: Address
    spender: Address
    amount: int


class MintFinished(NamedTuple):
    pass


class OwnershipTransferred(NamedTuple):
    previous_owner: Address
    new_owner: Address


class TokenPurchase(NamedTuple):
    purchaser: Address
    value: int
    amount: int


class KYCChanged(NamedTuple):
    wallet: Address
    approved: bool


class TokenReservation(NamedTuple):
    wallet: Address
    amount: int


class ReservationCancelled(NamedTuple):
    wallet: Address
    amount: int


class ReservationConfirmed(NamedTuple):
    wallet: Address
    amount: int


class PhaseChanged(NamedTuple):
    previous: int
    current: int


class Paused(NamedTuple):
    pass


class Unpaused(NamedTuple):
    pass


class SaleFinalized(NamedTuple):
    tokens_sold: int
    airdrop_pool: int
    company_reserve: int


class LogEntry(NamedTuple):
    """A single event with its position in the log."""
    sequence: int
    timestamp: Timestamp
    event: Any


class Page(NamedTuple):
    entries: list[LogEntry]
    next_cursor: Optional[int]  # None when there is nothing left to read


class EventLog:
    """Ordered list of events emitted by completed steps."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, event: Any, timestamp: Timestamp = Timestamp(0)) -> LogEntry:
        entry = LogEntry(len(self._entries), timestamp, event)
        self._entries.append(entry)
        return entry

    def _truncate(self, mark: int) -> None:
        """Drop every entry appended after `mark`. Only used to roll back a failed step."""
        del self._entries[mark:]

    def get_page(
        self,
        event_type: Optional[type] = None,
        *,
        after: Optional[int] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        """Return up to `limit` entries with a sequence greater than `after`.

        Args:
            event_type: only return events of this type
            after: cursor returned by the previous page, None to start from the beginning
            limit: maximum number of entries in the page

        Returns:
            The page and the cursor to pass to the next call.
        """
        if limit <= 0:
            raise ValueError('limit must be positive')

        start = 0 if after is None else after + 1
        entries: list[LogEntry] = []
        for entry in self._entries[start:]:
            if event_type is not None and not isinstance(entry.event, event_type):
                continue
            entries.append(entry)
            if len(entries) == limit:
                break

        next_cursor = None
        if len(entries) == limit and entries[-1].sequence < len(self._entries) - 1:
            next_cursor = entries[-1].sequence
        return Page(entries, next_cursor)

    def iter_events(self, event_type: Optional[type] = None, *, page_size: int = DEFAULT_PAGE_SIZE):
        """Iterate over all events of `event_type`, fetching them one page at a time."""
        cursor: Optional[int] = None
        while True:
            page = self.get_page(event_type, after=cursor, limit=page_size)
            for entry in page.entries:
                yield entry.event
            if page.next_cursor is None:
                return
            cursor = page.next_cursor
