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

import copy
import functools
import inspect
from typing import Any, Callable, Hashable, NamedTuple, Optional, TypeVar

from tokensale.events import EventLog
from tokensale.exception import ReentrantCall, ValueNotAccepted
from tokensale.types import Address, Context, Timestamp, derive_address

F = TypeVar('F', bound=Callable[..., Any])

_MISSING = object()


class StateDict(dict):
    """A dict that can undo the writes made while a step is running.

    Every write done between `_journal_mark()` and the matching
    `_journal_release()` records the previous value of the key, so rolling
    back costs as much as the step wrote instead of the size of the dict.
    Marks nest: the journal is dropped when the outermost step releases it.

    Values must not be mutated in place while journaled. Replace them.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._journal: list[tuple[Hashable, Any]] = []
        self._written: dict[Hashable, int] = {}
        self._depth = 0
        super().__init__(*args, **kwargs)

    @property
    def journaling(self) -> bool:
        return self._depth > 0

    def written_in_step(self, key: Hashable) -> bool:
        """Whether `key` was written since the outermost running step began."""
        return key in self._written

    def _log(self, key: Hashable) -> None:
        if self._depth:
            self._journal.append((key, dict.get(self, key, _MISSING)))
            self._written[key] = self._written.get(key, 0) + 1

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._log(key)
        super().__setitem__(key, value)

    def __delitem__(self, key: Hashable) -> None:
        if key not in self:
            raise KeyError(key)
        self._log(key)
        super().__delitem__(key)

    def pop(self, key: Hashable, *default: Any) -> Any:
        if key in self:
            self._log(key)
        return super().pop(key, *default)

    def setdefault(self, key: Hashable, default: Any = None) -> Any:
        if key not in self:
            self[key] = default
        return self[key]

    def update(self, *args: Any, **kwargs: Any) -> None:
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def clear(self) -> None:
        for key in list(self):
            del self[key]

    def _journal_mark(self) -> int:
        self._depth += 1
        return len(self._journal)

    def _journal_rollback(self, mark: int) -> None:
        while len(self._journal) > mark:
            key, previous = self._journal.pop()
            if self._written[key] == 1:
                del self._written[key]
            else:
                self._written[key] -= 1
            if previous is _MISSING:
                dict.pop(self, key, None)
            else:
                dict.__setitem__(self, key, previous)
        self._journal_release(mark)

    def _journal_release(self, mark: int) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._journal.clear()
            self._written.clear()


class _Journaled(NamedTuple):
    obj: Any
    mark: Any


class _Snapshot(NamedTuple):
    fields: dict[str, Any]
    children: list[tuple[str, 'Blueprint', '_Snapshot']]
    log_mark: int


class Blueprint:
    """Base class of every stateful component.

    The state of a blueprint is the set of attributes annotated on its class
    body. Calls to methods decorated with `@public` are executed as a single
    step: if the method raises, every state field, every owned blueprint and
    the shared event log go back to what they were before the call.

    Fields holding an object with `_journal_mark`, `_journal_rollback` and
    `_journal_release` (such as `StateDict`) are journaled; every other field
    is deep-copied when the step starts.

    Subclasses list attributes holding other blueprints in `_owned` so they
    are saved and restored in place together with their owner.
    """

    _owned: tuple[str, ...] = ()

    def __init__(self, *, event_log: Optional[EventLog] = None, address: Optional[Address] = None) -> None:
        self._in_step = False
        self.event_log = event_log if event_log is not None else EventLog()
        self.address = address if address is not None else derive_address(f'{type(self).__name__}:{id(self)}')

    @classmethod
    def _state_fields(cls) -> list[str]:
        fields: list[str] = []
        for klass in reversed(cls.__mro__):
            if klass is Blueprint or not issubclass(klass, Blueprint):
                continue
            for name in inspect.get_annotations(klass):
                if name.startswith('_') or name in cls._owned or name in fields:
                    continue
                fields.append(name)
        return fields

    def _snapshot(self) -> _Snapshot:
        fields: dict[str, Any] = {}
        for name in self._state_fields():
            value = getattr(self, name, _MISSING)
            if value is _MISSING:
                fields[name] = _MISSING
            elif hasattr(value, '_journal_mark'):
                fields[name] = _Journaled(value, value._journal_mark())
            else:
                fields[name] = copy.deepcopy(value)

        children = []
        for name in self._owned:
            child = getattr(self, name, None)
            if child is not None:
                children.append((name, child, child._snapshot()))
        return _Snapshot(fields, children, len(self.event_log))

    def _restore(self, snapshot: _Snapshot) -> None:
        for name, value in snapshot.fields.items():
            if value is _MISSING:
                self.__dict__.pop(name, None)
            elif isinstance(value, _Journaled):
                value.obj._journal_rollback(value.mark)
                setattr(self, name, value.obj)
            else:
                setattr(self, name, value)
        for name, child, child_snapshot in snapshot.children:
            setattr(self, name, child)
            child._restore(child_snapshot)
        self.event_log._truncate(snapshot.log_mark)

    def _release(self, snapshot: _Snapshot) -> None:
        for value in snapshot.fields.values():
            if isinstance(value, _Journaled):
                value.obj._journal_release(value.mark)
        for _, child, child_snapshot in snapshot.children:
            child._release(child_snapshot)

    def emit(self, event: Any, timestamp: Timestamp = Timestamp(0)) -> None:
        self.event_log.append(event, timestamp)


def public(fn: Optional[F] = None, *, allow_value: bool = False) -> Any:
    """Mark a method as a public step.

    Only methods created with `allow_value=True` accept a context carrying
    value. A public method cannot be entered again on the same blueprint
    while a previous call is still running.
    """
    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: Blueprint, ctx: Context, *args: Any, **kwargs: Any) -> Any:
            if ctx.value and not allow_value:
                raise ValueNotAccepted(f'{fn.__name__} does not accept value')
            if self._in_step:
                raise ReentrantCall(f'Reentrant call to {fn.__name__}')

            snapshot = self._snapshot()
            self._in_step = True
            try:
                result = fn(self, ctx, *args, **kwargs)
            except BaseException:
                self._restore(snapshot)
                raise
            finally:
                self._in_step = False
            self._release(snapshot)
            return result

        setattr(wrapper, '_is_public', True)
        return wrapper  # type: ignore[return-value]

    if fn is not None:
        return decorator(fn)
    return decorator


def view(fn: F) -> F:
    """Mark a method as a read-only view. Views take no context and never change state."""
    setattr(fn, '_is_view', True)
    return fn
