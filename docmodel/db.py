import asyncio
import logging
from typing import Callable, Dict, List, Mapping, Optional, Union

from .handlers.base import validate_collection_name
from .model import Model, open_model
from .query import QueryExpression
from .store.base import StoreClient
from .validation import Schema

logger = logging.getLogger(__name__)


class Database:
    """ A database: collections in a store

        Collections are created on demand:

            db = Database(SqlStore('sqlite+aiosqlite://'))
            users = await db.model('users')

        Concurrent calls that need the same collection share one existence check,
        so it's created only once.
    """

    def __init__(self, store: StoreClient):
        self.store = store

        #: Pending and completed ensure-exists tasks, by collection name
        self._ensured = {}  # type: Dict[str, asyncio.Task]

    def __repr__(self):
        return 'Database({!r})'.format(self.store)

    async def collection(self, name: str) -> str:
        """ Make sure that a collection exists; create it if it doesn't

            :return: the collection name
            :raises StoreError
        """
        validate_collection_name(name)

        task = self._ensured.get(name)
        if task is None:
            task = self._ensured[name] = asyncio.ensure_future(self._ensure_collection(name))

        try:
            await asyncio.shield(task)
        except Exception:
            # A failed check is not cached: the next call will try again
            if task.done() and self._ensured.get(name) is task:
                del self._ensured[name]
            raise
        return name

    async def _ensure_collection(self, name: str):
        if not await self.store.collection_exists(name):
            await self.store.create_collection(name)
            logger.info('Collection %s just created', name)

    async def drop_collection(self, name: str):
        """ Drop a collection, if it exists """
        validate_collection_name(name)
        self._ensured.pop(name, None)

        if await self.store.collection_exists(name):
            await self.store.drop_collection(name)
            logger.info('Collection %s just dropped', name)
        else:
            logger.info('Collection %s does not exist', name)

    async def list_collections(self) -> List[str]:
        """ Names of all collections """
        return await self.store.list_collection_names()

    async def collection_exists(self, name: str) -> bool:
        return await self.store.collection_exists(validate_collection_name(name))

    async def query(self, query: QueryExpression, map: Optional[Callable] = None) -> Union[list, int]:
        """ Execute a query

            :param query: The query; see build_query() and DocQuery
            :param map: A function to apply to every record
            :return: List of records; a number for count queries
        """
        result = await self.store.execute_query(query)
        if map is not None and not query.is_scalar:
            return [map(doc) for doc in result]
        return result

    async def model(self, name: str, schema: Union[Schema, Mapping, None] = None, **settings) -> Model:
        """ Get a ready Model for a collection

            :param name: Collection name
            :param schema: Schema to validate records with
            :param settings: Model settings; see ModelSettingsDict
        """
        return await open_model(self, name, schema, **settings)

    async def close(self):
        await self.store.close()
