from typing import AsyncIterator, Iterable, List, Mapping, Optional, Union

from ..query import QueryExpression


class StoreClient:
    """ The interface of a document store

        A store keeps named collections of documents. Every document has a unique `_key` assigned by the store,
        an `_id` ("<collection>/<_key>"), and a revision, `_rev`, that changes on every write.

        Every method is a coroutine. Failures of the underlying driver are raised as `StoreError`,
        with the driver exception chained to it. Stores never retry.
    """

    # region Collections

    async def collection_exists(self, name: str) -> bool:
        raise NotImplementedError()

    async def create_collection(self, name: str):
        raise NotImplementedError()

    async def drop_collection(self, name: str):
        raise NotImplementedError()

    async def list_collection_names(self) -> List[str]:
        raise NotImplementedError()

    async def truncate(self, name: str):
        """ Remove all documents from the collection """
        raise NotImplementedError()

    async def count(self, name: str) -> int:
        """ The number of documents in the collection """
        raise NotImplementedError()

    # endregion

    # region Queries

    async def execute_query(self, query: QueryExpression) -> Union[List[dict], int]:
        """ Execute a query

            :return: list of documents, or a number for a count query
        """
        raise NotImplementedError()

    def stream_query(self, query: QueryExpression) -> AsyncIterator[dict]:
        """ Execute a query, iterate over the documents as they arrive """
        raise NotImplementedError()

    async def get_by_key(self, name: str, key: str) -> Optional[dict]:
        """ Get a document by its key; `None` when there's no such document """
        raise NotImplementedError()

    async def find_by_example(self, name: str, pattern: Mapping, limit: Optional[int] = None) -> List[dict]:
        """ Find documents that match every field of `pattern`, in insertion order """
        raise NotImplementedError()

    # endregion

    # region Writes

    async def import_batch(self, name: str, records: Iterable[Mapping]) -> dict:
        """ Insert many documents at once

            Documents with a `_key` that already exists are not inserted, and count as errors.

            :return: {'created': int, 'errors': int, 'empty': int, 'updated': int, 'ignored': int}
        """
        raise NotImplementedError()

    async def update_by_key(self, name: str, key: str, value: Mapping) -> dict:
        """ Merge `value` into the document

            :return: {'_key', '_id', '_rev', '_oldRev'}
            :raises DocumentNotFoundError
        """
        raise NotImplementedError()

    async def bulk_update(self, name: str, records: Iterable[Mapping]) -> List[dict]:
        """ Merge every record into the document with the same `_key`

            :return: list of {'_key', '_id', '_rev', '_oldRev'}
            :raises DocumentNotFoundError
        """
        raise NotImplementedError()

    async def update_by_example(self, name: str, pattern: Mapping, value: Mapping) -> dict:
        """ Merge `value` into every document that matches `pattern`

            :return: {'updated': int}
        """
        raise NotImplementedError()

    async def remove_by_keys(self, name: str, keys: Iterable[str]) -> dict:
        """ Remove documents by their keys

            :return: {'removed': int, 'ignored': int}
        """
        raise NotImplementedError()

    async def remove_by_example(self, name: str, pattern: Mapping) -> dict:
        """ Remove every document that matches `pattern`

            :return: {'deleted': int}
        """
        raise NotImplementedError()

    # endregion

    async def close(self):
        """ Release the connections """


def merge_patch(doc: dict, patch: Mapping) -> dict:
    """ Merge a patch into a document: objects are merged recursively, everything else is replaced """
    merged = dict(doc)
    for name, value in patch.items():
        if isinstance(value, Mapping) and isinstance(merged.get(name), Mapping):
            merged[name] = merge_patch(merged[name], value)
        else:
            merged[name] = value
    return merged


#: Document attributes managed by the store
SYSTEM_ATTRIBUTES = frozenset(('_key', '_id', '_rev'))
