""" A document store on top of SqlAlchemy's asyncio extension

    Every collection is a table of JSON documents:

    * `id`: autoincrement primary key; gives the insertion order
    * `key`: the document key, unique
    * `doc`: the document itself, including `_key`, `_id`, and `_rev`

    Queries use `json_extract()`, which is available on SQLite (with the JSON1 extension, built-in since 3.38)
    and on MySQL. With SQLite, use the aiosqlite driver:

        store = SqlStore('sqlite+aiosqlite:///documents.db')
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Mapping, Optional, Union

from sqlalchemy import MetaData, Table, Column, Integer, String, JSON
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql.expression import and_

from .base import StoreClient, merge_patch, SYSTEM_ATTRIBUTES
from ..compilers.sql import compile_select, compile_example, project_document
from ..exc import StoreError, DocumentNotFoundError
from ..handlers.base import validate_collection_name
from ..query import QueryExpression

logger = logging.getLogger(__name__)


def new_key() -> str:
    return uuid.uuid4().hex


def new_rev() -> str:
    return uuid.uuid4().hex[:12]


class SqlStore(StoreClient):
    """ Documents in SQL tables """

    def __init__(self, engine: Union[str, AsyncEngine], **engine_kwargs):
        """ Init the store

        :param engine: An AsyncEngine, or a database URL to create one
        :param engine_kwargs: Arguments for create_async_engine(), when a URL is given
        """
        if isinstance(engine, str):
            engine = create_async_engine(engine, **engine_kwargs)
        self.engine = engine

        self._metadata = MetaData()
        self._tables = {}

    def _table(self, name: str) -> Table:
        """ Get the table for a collection """
        if name not in self._tables:
            validate_collection_name(name)
            self._tables[name] = Table(
                name, self._metadata,
                Column('id', Integer, primary_key=True, autoincrement=True),
                Column('key', String(255), nullable=False, unique=True),
                Column('doc', JSON, nullable=False),
            )
        return self._tables[name]

    @asynccontextmanager
    async def _begin(self, action: str):
        """ A connection with a transaction; driver errors become StoreError """
        try:
            async with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StoreError('{} failed: {}'.format(action, e), original=e) from e

    # region Collections

    async def collection_exists(self, name: str) -> bool:
        validate_collection_name(name)
        async with self._begin('collection_exists') as conn:
            return await conn.run_sync(lambda c: sa_inspect(c).has_table(name))

    async def create_collection(self, name: str):
        table = self._table(name)
        async with self._begin('create_collection') as conn:
            await conn.run_sync(lambda c: table.create(c, checkfirst=True))
        logger.debug('Created table for collection %s', name)

    async def drop_collection(self, name: str):
        table = self._table(name)
        async with self._begin('drop_collection') as conn:
            await conn.run_sync(lambda c: table.drop(c, checkfirst=True))

        # Forget it
        self._metadata.remove(table)
        del self._tables[name]
        logger.debug('Dropped table for collection %s', name)

    async def list_collection_names(self) -> List[str]:
        async with self._begin('list_collections') as conn:
            return sorted(await conn.run_sync(lambda c: sa_inspect(c).get_table_names()))

    async def truncate(self, name: str):
        table = self._table(name)
        async with self._begin('truncate') as conn:
            await conn.execute(delete(table))

    async def count(self, name: str) -> int:
        table = self._table(name)
        async with self._begin('count') as conn:
            return await conn.scalar(select(func.count()).select_from(table))

    # endregion

    # region Queries

    async def execute_query(self, query: QueryExpression) -> Union[List[dict], int]:
        table = self._table(query.collection)
        stmt = compile_select(query, table)
        logger.debug('Query: %r', query)

        async with self._begin('query') as conn:
            # Count
            if query.count:
                return await conn.scalar(stmt)

            # Documents
            res = await conn.execute(stmt)
            return [project_document(query, doc) for doc in res.scalars()]

    async def stream_query(self, query: QueryExpression) -> AsyncIterator[dict]:
        if query.count:
            raise ValueError('A count query gives a scalar: use execute_query()')

        table = self._table(query.collection)
        stmt = compile_select(query, table)

        try:
            async with self.engine.connect() as conn:
                res = await conn.stream(stmt)
                async for doc in res.scalars():
                    yield project_document(query, doc)
        except SQLAlchemyError as e:
            raise StoreError('query failed: {}'.format(e), original=e) from e

    async def get_by_key(self, name: str, key: str) -> Optional[dict]:
        table = self._table(name)
        async with self._begin('get') as conn:
            return await conn.scalar(select(table.c.doc).where(table.c.key == key))

    async def find_by_example(self, name: str, pattern: Mapping, limit: Optional[int] = None) -> List[dict]:
        table = self._table(name)
        stmt = select(table.c.doc).order_by(table.c.id)
        conditions = compile_example(pattern, table)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._begin('find_by_example') as conn:
            res = await conn.execute(stmt)
            return list(res.scalars())

    # endregion

    # region Writes

    async def import_batch(self, name: str, records: Iterable[Mapping]) -> dict:
        table = self._table(name)
        records = list(records)
        result = dict(created=0, errors=0, empty=0, updated=0, ignored=0)

        async with self._begin('import') as conn:
            # Keys that are already taken
            wanted_keys = [r['_key'] for r in records
                           if isinstance(r, Mapping) and isinstance(r.get('_key'), str)]
            taken_keys = set()
            if wanted_keys:
                res = await conn.execute(select(table.c.key).where(table.c.key.in_(wanted_keys)))
                taken_keys.update(res.scalars())

            # Prepare rows
            rows = []
            for record in records:
                if not isinstance(record, Mapping):
                    result['errors'] += 1
                    continue
                if not record:
                    result['empty'] += 1
                    continue

                key = record.get('_key', None)
                if key is None:
                    key = new_key()
                elif not isinstance(key, str) or key in taken_keys:
                    result['errors'] += 1
                    continue
                taken_keys.add(key)

                doc = dict(record)
                doc.update(_key=key, _id='{}/{}'.format(name, key), _rev=new_rev())
                rows.append(dict(key=key, doc=doc))

            # Insert
            if rows:
                await conn.execute(insert(table), rows)
            result['created'] = len(rows)

        return result

    async def _load_for_update(self, conn, table: Table, name: str, key: str) -> dict:
        doc = await conn.scalar(select(table.c.doc).where(table.c.key == key))
        if doc is None:
            raise DocumentNotFoundError(name, key)
        return doc

    async def _write_patch(self, conn, table: Table, doc: dict, patch: Mapping) -> dict:
        """ Merge a patch into a document, save it """
        new_doc = merge_patch(doc, {k: v for k, v in patch.items() if k not in SYSTEM_ATTRIBUTES})
        new_doc['_rev'] = new_rev()
        await conn.execute(update(table).where(table.c.key == doc['_key']).values(doc=new_doc))
        return {'_key': new_doc['_key'], '_id': new_doc['_id'], '_rev': new_doc['_rev'], '_oldRev': doc['_rev']}

    async def update_by_key(self, name: str, key: str, value: Mapping) -> dict:
        table = self._table(name)
        async with self._begin('update') as conn:
            doc = await self._load_for_update(conn, table, name, key)
            return await self._write_patch(conn, table, doc, value)

    async def bulk_update(self, name: str, records: Iterable[Mapping]) -> List[dict]:
        table = self._table(name)
        results = []
        async with self._begin('bulk_update') as conn:
            for record in records:
                doc = await self._load_for_update(conn, table, name, record.get('_key'))
                results.append(await self._write_patch(conn, table, doc, record))
        return results

    async def update_by_example(self, name: str, pattern: Mapping, value: Mapping) -> dict:
        table = self._table(name)
        stmt = select(table.c.doc).order_by(table.c.id)
        conditions = compile_example(pattern, table)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        async with self._begin('update_by_example') as conn:
            docs = list((await conn.execute(stmt)).scalars())
            for doc in docs:
                await self._write_patch(conn, table, doc, value)
        return {'updated': len(docs)}

    async def remove_by_keys(self, name: str, keys: Iterable[str]) -> dict:
        table = self._table(name)
        keys = set(keys)
        async with self._begin('remove_by_keys') as conn:
            res = await conn.execute(delete(table).where(table.c.key.in_(keys)))
        return {'removed': res.rowcount, 'ignored': len(keys) - res.rowcount}

    async def remove_by_example(self, name: str, pattern: Mapping) -> dict:
        table = self._table(name)
        stmt = delete(table)
        conditions = compile_example(pattern, table)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        async with self._begin('remove_by_example') as conn:
            res = await conn.execute(stmt)
        return {'deleted': res.rowcount}

    # endregion

    async def close(self):
        await self.engine.dispose()
