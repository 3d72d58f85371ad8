"""
### Slice Operation
Slicing corresponds to the `LIMIT skip, limit` part of a query.

The Slice operation consists of two optional parts:

* `limit` would limit the number of items returned (default: 100)
* `skip` would shift the "window" a number of items (default: 0)

Together, these two elements implement pagination.

Example:

```python
await model.find({
    'sort': 'created DESC',
    'limit': 100,  # 100 items per page
    'skip': 200,  # skip 200 items, meaning, we're on the third page
})
```

Values: can be an integer, a string with an integer, or `None`.
The window is always applied after filtering and sorting.
"""

from .base import QueryHandlerBase
from ..exc import InvalidQueryError


class DocLimit(QueryHandlerBase):
    """ Skip & limit

        Handles two keys:
        * 'skip': None, or int >= 0
        * 'limit': None, or int > 0
    """

    query_object_section_name = 'limit'

    def __init__(self, collection, default_limit=100, max_items=None):
        """ Init a limit

        :param collection: Collection name
        :param default_limit: The limit to use when the user has provided none.
            `None` means no limit at all.
        :param max_items: The maximum number of items that can be loaded with this query.
            The user can never go any higher than that, and this value is forced onto every query.
        """
        super(DocLimit, self).__init__(collection)

        # Config
        self.default_limit = default_limit
        self.max_items = max_items
        assert self.default_limit is None or self.default_limit > 0
        assert self.max_items is None or self.max_items > 0

        # On input
        self.skip = None
        self.limit = None

    def input_prepare_query_object(self, query_object):
        """ Alter Query Object

        Unlike other handlers, this one receives 2 values: 'skip' and 'limit'.
        DocQuery only supports one key per handler.
        Solution: pack them as a tuple
        """
        if 'skip' in query_object or 'limit' in query_object:
            query_object['limit'] = (query_object.pop('skip', None),
                                     query_object.pop('limit', None))
            if query_object['limit'] == (None, None):
                query_object.pop('limit')  # remove it if it's actually empty

        # When there is a 'count', there's no window at all
        # We can safely just alter ourselves, because we're a copy anyway
        if query_object.get('count', False):
            self.default_limit = None
            self.max_items = None

        return query_object

    def input(self, skip=None, limit=None):
        # DocQuery actually gives us a tuple (skip, limit)
        # Adapt.
        if isinstance(skip, tuple):
            skip, limit = skip

        # Super
        super(DocLimit, self).input((skip, limit))

        # Validate
        skip = self._parse_int('Skip', skip)
        limit = self._parse_int('Limit', limit)

        if skip is not None and skip < 0:
            raise InvalidQueryError('Skip must be a non-negative integer')
        if limit is not None and limit <= 0:
            raise InvalidQueryError('Limit must be a positive integer')

        # Defaults
        skip = skip or 0
        if limit is None:
            limit = self.default_limit

        # Max limit
        if self.max_items:
            limit = min(self.max_items, limit or self.max_items)

        # Done
        self.skip = skip
        self.limit = limit
        return self

    @staticmethod
    def _parse_int(name, value):
        """ Accept integers and integer strings: query strings give us strings """
        if value is None:
            return None
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        elif isinstance(value, int) and not isinstance(value, bool):
            return value
        raise InvalidQueryError('{} must be either an integer, or null'.format(name))

    def alter_query(self, query):
        """ Apply skip & limit to the query """
        return query._replace(skip=self.skip or 0, limit=self.limit)

    def get_final_input_value(self):
        return dict(skip=self.skip, limit=self.limit)
