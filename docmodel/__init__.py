"""
DocModel is a small object-document mapper: it keeps records in the collections of a document store,
and lets you query them with a Query Object made of small string expressions:

```python
users = await db.model('users')
await users.find({
    'filter': ['age >= 18', 'name LIKE jo%'],  # AND-ed together
    'sort': ['age DESC', 'name 1'],  # multi-key sort
    'skip': 0,
    'limit': 10,
})
```

Expressions are parsed once, when the query is built, into a store-agnostic QueryExpression.
Stores compile it into their own language: AQL for ArangoDB, SQL for the SqlAlchemy store;
operand values are always bound parameters.
"""

# Exceptions that are used here and there
from .exc import *

# Query Object handlers: that's where the expressions are parsed
from . import handlers
from .handlers import FilterExpression, SortKey, parse_filter, parse_sort, ASC, DESC

# DocQuery turns a Query Object into a QueryExpression
from .query import DocQuery, QueryExpression, Pagination, build_query

# Compilers turn a QueryExpression into a store query
from .compilers import compile_aql, compile_select

# Stores
from .store import StoreClient, SqlStore

# Validation
from .validation import Schema, validate

# Models
from .targets import ByKey, ByKeyList, ByExample, BulkRecords
from .model import Model, open_model
from .db import Database

# Helpers
from .util import QuerySettingsDict, ModelSettingsDict
