"""
A Model is a collection of records, with create/find/update/delete/count operations.

```python
from docmodel import Database, SqlStore, ByKey, ByExample

db = Database(SqlStore('sqlite+aiosqlite:///app.db'))
users = await db.model('users', schema={'name': ('string', ...), 'age': 'integer'})

await users.create([{'name': 'John', 'age': 18}, {'name': 'Mary', 'age': 21}])
await users.find({'filter': 'age >= 18', 'sort': 'age DESC', 'limit': 10})
await users.update(ByExample({'name': 'John'}), {'age': 19})
await users.count('age > 20')
```

Records are stamped with `createdAt` when created, and with `updatedAt` whenever they're updated:
both are milliseconds since the epoch, one value per call.
"""

import logging
import time
from typing import AsyncIterator, List, Mapping, Optional, Union

from .exc import InvalidQueryError
from .handlers.base import validate_collection_name
from .query import DocQuery
from .store.base import StoreClient
from .targets import ByKey, ByKeyList, ByExample, BulkRecords
from .util import Reusable
from .validation import Schema, validate

logger = logging.getLogger(__name__)


class Model:
    """ A collection of records

        Use open_model() or Database.model() to get one: they make sure that the collection exists.

        The following settings are accepted as keyword arguments (see ModelSettingsDict):

        * query_defaults: Defaults for every Query Object: the user's Query Object is merged into it
        * Settings for DocQuery: see QuerySettingsDict
    """

    # The class to use for queries
    _DOCQUERY_CLS = DocQuery

    def __init__(self, store: StoreClient, name: str, schema: Union[Schema, Mapping, None] = None,
                 query_defaults: Optional[Mapping] = None, **handler_settings):
        """ Init a Model

        :param store: The store to work with
        :param name: Collection name
        :param schema: Schema to validate records with; see docmodel.validation
        :param query_defaults: Defaults for every Query Object
        :param handler_settings: Settings for DocQuery
        :raises InvalidQueryError: invalid collection name, or invalid query_defaults
        :raises KeyError: unknown settings
        """
        self.store = store
        self._name = validate_collection_name(name)

        # Schema
        if schema is not None and not isinstance(schema, Schema):
            schema = Schema(schema)
        self.schema = schema

        # Queries
        self.handler_settings = handler_settings
        self.reusable_docquery = Reusable(self._DOCQUERY_CLS(name, handler_settings))  # type: DocQuery

        # Defaults for the Query Object; validate them now
        self.query_defaults = dict(query_defaults or {})
        self.reusable_docquery.query(**self.query_defaults)

    @property
    def name(self) -> str:
        """ Collection name """
        return self._name

    def __repr__(self):
        return 'Model({})'.format(self._name)

    @staticmethod
    def _now() -> int:
        """ Current time, epoch milliseconds """
        return int(time.time() * 1000)

    # region Queries

    def query(self, query_obj: Optional[Mapping] = None) -> DocQuery:
        """ Make a DocQuery using the provided Query Object, merged into query_defaults

        :raises InvalidQueryError: the Query Object is wrong
        :raises DisabledError: a disabled operation was used
        """
        if not isinstance(query_obj, (Mapping, NoneType)):
            raise InvalidQueryError('Query Object must be either an object, or null')

        query_obj = {**self.query_defaults, **(query_obj or {})}
        return self.reusable_docquery.query(**query_obj)

    async def find(self, query_obj: Optional[Mapping] = None) -> Union[List[dict], int]:
        """ Find records

        :param query_obj: Query Object: filter, sort, skip, limit, project, count
        :return: List of records; or a number, when the Query Object has `count`
        """
        query = self.query(query_obj).end()
        return await self.store.execute_query(query)

    def stream(self, query_obj: Optional[Mapping] = None) -> AsyncIterator[dict]:
        """ Find records, and iterate over them as they are loaded

            The query is built right away, so Query Object errors are raised by this call.

            ```python
            async for user in users.stream({'sort': 'age ASC', 'limit': 1000}):
                ...
            ```
        """
        query = self.query(query_obj).end()
        if query.is_scalar:
            raise InvalidQueryError('Cannot stream a count')
        return self.store.stream_query(query)

    async def find_by(self, pattern: Mapping, limit: int = 100) -> List[dict]:
        """ Find records that have the same values as `pattern`

            Nested objects in `pattern` are matched field by field.
        """
        if not isinstance(pattern, Mapping):
            raise InvalidQueryError('Pattern must be an object')
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidQueryError('Limit must be a positive integer')
        return await self.store.find_by_example(self._name, pattern, limit=limit)

    async def find_one(self, query_obj_or_key: Union[str, Mapping, None] = None) -> Optional[dict]:
        """ Find a single record

        :param query_obj_or_key: A record key; or a Query Object: filter, sort, skip, project
        :return: The record, or None
        """
        # By key
        if isinstance(query_obj_or_key, str):
            return await self.store.get_by_key(self._name, query_obj_or_key)

        # By query
        if not isinstance(query_obj_or_key, (Mapping, NoneType)):
            raise InvalidQueryError('Query Object must be either an object, a key, or null')
        query_obj = dict(query_obj_or_key or {})
        query_obj.pop('count', None)
        query_obj['limit'] = 1

        rows = await self.store.execute_query(self.query(query_obj).end())
        return rows[0] if rows else None

    async def count(self, filter=None) -> int:
        """ Count records

        :param filter: Filter expression(s). Without them, the store counts the whole collection.
        """
        query_obj = {'count': True}
        if filter is not None:
            query_obj['filter'] = filter
        query = self.query(query_obj).end()

        # Unfiltered: native count
        if not query.filters:
            return await self.store.count(self._name)
        return await self.store.execute_query(query)

    # endregion

    # region Writes

    def _validate_records(self, records, action: str) -> List[dict]:
        """ Check that records are objects, then validate them against the schema

        :raises InvalidQueryError: a record is not an object
        :raises ValidationError: schema violations
        """
        for record in records:
            if not isinstance(record, Mapping):
                raise InvalidQueryError('Model "{}": records have to be objects, not {}'
                                        .format(action, type(record)))
        return validate(list(records), self.schema)

    async def create(self, data: Union[Mapping, List[Mapping]]) -> dict:
        """ Create records

        :param data: A record, or a list of them
        :return: Import summary: {'created', 'errors', 'empty', 'updated', 'ignored'}
        :raises ValidationError
        """
        records = data if isinstance(data, list) else [data]
        records = self._validate_records(records, 'create')

        # One timestamp for the whole batch
        now = self._now()
        records = [{**r, 'createdAt': now} for r in records]

        # Import
        return await self.store.import_batch(self._name, records)

    async def update(self, target: Union[ByKey, ByExample, BulkRecords], new_value: Optional[Mapping] = None):
        """ Update records

            * ByKey(key), new_value: update a single record. Returns {'_key', '_id', '_rev', '_oldRev'}
            * BulkRecords(records): update every record by its `_key`. Returns a list of those.
            * ByExample(pattern), new_value: update every record that matches. Returns {'updated'}

            Values are merged into the records.

        :raises InvalidQueryError: no new value, or a bulk record without `_key`
        :raises ValidationError
        :raises DocumentNotFoundError
        :raises TypeError: unsupported target
        """
        now = self._now()

        # Bulk: every record is stamped, then validated
        if isinstance(target, BulkRecords):
            for record in target.records:
                if not isinstance(record, Mapping) or not isinstance(record.get('_key'), str):
                    raise InvalidQueryError('Model "update": bulk records have to be objects with a `_key`')
            records = self._validate_records([{**r, 'updatedAt': now} for r in target.records], 'update')
            return await self.store.bulk_update(self._name, records)

        # Single value
        if not isinstance(target, (ByKey, ByExample)):
            raise TypeError('Cannot update {!r}: use ByKey, ByExample, or BulkRecords'.format(target))
        if new_value is None:
            raise InvalidQueryError('Model "update": the new value is required for {!r}'.format(target))

        new_value, = self._validate_records([new_value], 'update')
        new_value = {**new_value, 'updatedAt': now}

        if isinstance(target, ByKey):
            return await self.store.update_by_key(self._name, target.key, new_value)
        else:
            return await self.store.update_by_example(self._name, target.pattern, new_value)

    async def delete(self, target: Union[ByKey, ByKeyList, ByExample]) -> dict:
        """ Delete records

            * ByKey(key), ByKeyList(keys): Returns {'removed', 'ignored'}
            * ByExample(pattern): Returns {'deleted'}

        :raises TypeError: unsupported target
        """
        if isinstance(target, ByKey):
            return await self.store.remove_by_keys(self._name, [target.key])
        elif isinstance(target, ByKeyList):
            return await self.store.remove_by_keys(self._name, target.keys)
        elif isinstance(target, ByExample):
            return await self.store.remove_by_example(self._name, target.pattern)
        else:
            raise TypeError('Cannot delete {!r}: use ByKey, ByKeyList, or ByExample'.format(target))

    async def delete_all(self):
        """ Delete every record """
        await self.store.truncate(self._name)

    # endregion


async def open_model(db, name: str, schema: Union[Schema, Mapping, None] = None, **settings) -> Model:
    """ Get a ready Model: make sure that its collection exists

    :param db: A Database, or a StoreClient.
        With a Database, concurrent calls for the same collection share a single existence check.
    :param name: Collection name
    :param schema: Schema to validate records with
    :param settings: Model settings; see ModelSettingsDict
    """
    # Init first: settings errors are raised before any I/O
    if isinstance(db, StoreClient):
        model = Model(db, name, schema, **settings)
        if not await db.collection_exists(name):
            await db.create_collection(name)
            logger.info('Collection %s just created', name)
    else:
        model = Model(db.store, name, schema, **settings)
        await db.collection(name)
    return model


NoneType = type(None)
