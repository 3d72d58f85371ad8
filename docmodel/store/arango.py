""" A document store on top of ArangoDB

    Uses the synchronous python-arango client; every call is run in the default thread executor
    so that it does not block the event loop.

        store = ArangoStore.connect('mydb', username='root', password='secret')

    Requires the `arango` extra: `pip install docmodel[arango]`
"""

import asyncio
import functools
import logging
from typing import AsyncIterator, Iterable, List, Mapping, Optional, Union

from arango import ArangoClient
from arango.database import StandardDatabase
from arango.exceptions import ArangoError

from .base import StoreClient, SYSTEM_ATTRIBUTES
from ..compilers.aql import compile_aql
from ..exc import StoreError, DocumentNotFoundError
from ..query import QueryExpression

logger = logging.getLogger(__name__)

#: ArangoDB error code: "document not found"
ERROR_DOCUMENT_NOT_FOUND = 1202


class ArangoStore(StoreClient):
    """ Documents in ArangoDB collections """

    def __init__(self, db: StandardDatabase, client: ArangoClient = None, batch_size: int = 1000):
        """ Init the store

        :param db: python-arango database object
        :param client: The client to close with the store
        :param batch_size: Cursor batch size for streaming queries
        """
        self.db = db
        self.client = client
        self.batch_size = batch_size

    @classmethod
    def connect(cls, database: str, username: str = 'root', password: str = '',
                host: str = '127.0.0.1', port: int = 8529, https: bool = False,
                **client_kwargs) -> 'ArangoStore':
        """ Connect to a database

        :param database: Database name
        :param username: User name
        :param password: Password
        :param host: Server host
        :param port: Server port; with `https`, it's always 443
        :param https: Use HTTPS
        :param client_kwargs: More arguments for ArangoClient
        """
        if https:
            port = 443
        url = '{scheme}://{host}:{port}'.format(scheme='https' if https else 'http', host=host, port=port)
        client = ArangoClient(hosts=url, **client_kwargs)
        return cls(client.db(database, username=username, password=password), client=client)

    async def _run(self, func, *args, **kwargs):
        """ Run a blocking client call in the executor; client errors become StoreError """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
        except ArangoError as e:
            raise StoreError('{} failed: {}'.format(getattr(func, '__name__', func), e), original=e) from e

    # region Collections

    async def collection_exists(self, name: str) -> bool:
        return await self._run(self.db.has_collection, name)

    async def create_collection(self, name: str):
        await self._run(self.db.create_collection, name)
        logger.debug('Created collection %s', name)

    async def drop_collection(self, name: str):
        await self._run(self.db.delete_collection, name, ignore_missing=True)
        logger.debug('Dropped collection %s', name)

    async def list_collection_names(self) -> List[str]:
        collections = await self._run(self.db.collections)
        return sorted(c['name'] for c in collections if not c['system'])

    async def truncate(self, name: str):
        await self._run(self.db.collection(name).truncate)

    async def count(self, name: str) -> int:
        return await self._run(self.db.collection(name).count)

    # endregion

    # region Queries

    async def _execute_aql(self, query: QueryExpression, **kwargs):
        text, bind_vars = compile_aql(query)
        logger.debug('AQL: %s %r', text, bind_vars)
        return await self._run(self.db.aql.execute, text, bind_vars=bind_vars, **kwargs)

    async def execute_query(self, query: QueryExpression) -> Union[List[dict], int]:
        cursor = await self._execute_aql(query)
        rows = await self._run(list, cursor)
        return rows[0] if query.count else rows

    async def stream_query(self, query: QueryExpression) -> AsyncIterator[dict]:
        if query.count:
            raise ValueError('A count query gives a scalar: use execute_query()')

        cursor = await self._execute_aql(query, batch_size=self.batch_size)
        try:
            while True:
                batch = cursor.batch()
                while batch:
                    yield batch.popleft()
                if not cursor.has_more():
                    break
                await self._run(cursor.fetch)
        finally:
            await self._run(cursor.close, ignore_missing=True)

    async def get_by_key(self, name: str, key: str) -> Optional[dict]:
        return await self._run(self.db.collection(name).get, key)

    async def find_by_example(self, name: str, pattern: Mapping, limit: Optional[int] = None) -> List[dict]:
        cursor = await self._run(self.db.collection(name).find, dict(pattern), limit=limit)
        return await self._run(list, cursor)

    # endregion

    # region Writes

    async def import_batch(self, name: str, records: Iterable[Mapping]) -> dict:
        res = await self._run(self.db.collection(name).import_bulk,
                              [dict(r) for r in records], halt_on_error=False, details=False)
        return {k: res.get(k, 0) for k in ('created', 'errors', 'empty', 'updated', 'ignored')}

    @staticmethod
    def _update_result(meta: dict) -> dict:
        return {'_key': meta['_key'], '_id': meta['_id'], '_rev': meta['_rev'], '_oldRev': meta.get('_old_rev')}

    @staticmethod
    def _patch_body(key: str, value: Mapping) -> dict:
        body = {k: v for k, v in value.items() if k not in SYSTEM_ATTRIBUTES}
        body['_key'] = key
        return body

    async def update_by_key(self, name: str, key: str, value: Mapping) -> dict:
        try:
            meta = await self._run(self.db.collection(name).update, self._patch_body(key, value), merge=True)
        except StoreError as e:
            if getattr(e.original, 'error_code', None) == ERROR_DOCUMENT_NOT_FOUND:
                raise DocumentNotFoundError(name, key) from e.original
            raise
        return self._update_result(meta)

    async def bulk_update(self, name: str, records: Iterable[Mapping]) -> List[dict]:
        bodies = [self._patch_body(r['_key'], r) for r in records]
        results = await self._run(self.db.collection(name).update_many, bodies, merge=True)

        # update_many() gives exceptions in place of failed documents
        for body, res in zip(bodies, results):
            if isinstance(res, ArangoError):
                if res.error_code == ERROR_DOCUMENT_NOT_FOUND:
                    raise DocumentNotFoundError(name, body['_key']) from res
                raise StoreError('update_many failed: {}'.format(res), original=res) from res
        return [self._update_result(meta) for meta in results]

    async def update_by_example(self, name: str, pattern: Mapping, value: Mapping) -> dict:
        body = {k: v for k, v in value.items() if k not in SYSTEM_ATTRIBUTES}
        n = await self._run(self.db.collection(name).update_match, dict(pattern), body, merge=True)
        return {'updated': n}

    async def remove_by_keys(self, name: str, keys: Iterable[str]) -> dict:
        keys = list(keys)
        results = await self._run(self.db.collection(name).delete_many, keys)
        removed = sum(1 for res in results if not isinstance(res, ArangoError))
        return {'removed': removed, 'ignored': len(keys) - removed}

    async def remove_by_example(self, name: str, pattern: Mapping) -> dict:
        n = await self._run(self.db.collection(name).delete_match, dict(pattern))
        return {'deleted': n}

    # endregion

    async def close(self):
        if self.client is not None:
            self.client.close()
