"""
### Count Operation
Counting corresponds to the `COLLECT WITH COUNT` part of a query.

Simply, return the number of items, without returning the items themselves. Just a number. That's it.

Example:

```python
await model.count('age >= 18')
```

which is the same as running a query with:

```python
{
    'filter': 'age >= 18',
    'count': True,
}
```
"""

from .base import QueryHandlerBase
from ..exc import InvalidQueryError


class DocCount(QueryHandlerBase):
    """ Count query

        Just give it:
        * count=True
    """

    query_object_section_name = 'count'

    def __init__(self, collection):
        super(DocCount, self).__init__(collection)

        # On input
        self.count = None

    def input_prepare_query_object(self, query_object):
        # When we count, we don't care about certain things
        if query_object.get('count', False):
            # Performance: do not sort when counting
            query_object.pop('sort', None)
            # We don't care about projections either
            query_object.pop('project', None)
            # Also, remove all skips & limits
            # Note that DocLimit has already packed them into 'limit'
            query_object.pop('skip', None)
            query_object.pop('limit', None)

        return query_object

    def input(self, count=None):
        super(DocCount, self).input(count)
        if not isinstance(count, (int, bool, NoneType)):
            raise InvalidQueryError('Count must be either true or false. Or at least a 1, or a 0')

        # Done
        self.count = bool(count)
        return self

    def alter_query(self, query):
        if not self.count:
            return query
        # A count has no window, no ordering, and no projection
        return query._replace(count=True, sorts=(), skip=0, limit=None, projection=None)


NoneType = type(None)
