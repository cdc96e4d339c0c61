import inspect as _inspect
from functools import wraps
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError, PyMongoError

from taskledger.core.exceptions import ConflictError, InternalFailure
from taskledger.db import TaskLedgerDB


def parse_object_id(value: str) -> Optional[ObjectId]:
    """Return the ObjectId for ``value``, or None if it is not a valid id."""
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


class BaseRepository:
    """Common plumbing for repositories backed by ``TaskLedgerDB``.

    Every public coroutine defined on a subclass is wrapped by ``with_store_errors`` so that driver errors never
    leak past the repository boundary.
    """

    def __init__(self, db: TaskLedgerDB):
        self.db = db

    @staticmethod
    def with_store_errors(fn):
        if not _inspect.iscoroutinefunction(fn):
            raise TypeError("@with_store_errors can only decorate async functions")

        @wraps(fn)
        async def _wrap(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except DuplicateKeyError as e:
                raise ConflictError("Record already exists") from e
            except PyMongoError as e:
                raise InternalFailure("Persistence failure") from e

        return _wrap

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for name, attr in list(cls.__dict__.items()):
            if name.startswith("_"):
                continue
            if _inspect.iscoroutinefunction(attr):
                setattr(cls, name, cls.with_store_errors(attr))
