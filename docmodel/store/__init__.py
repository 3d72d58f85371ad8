""" Document stores

    A store executes QueryExpressions and performs the raw writes for a Model.

    * SqlStore: JSON documents in SQL tables, through SqlAlchemy's asyncio extension
    * ArangoStore: ArangoDB, through python-arango. Import it from `docmodel.store.arango`;
      it needs the `arango` extra.
"""

from .base import StoreClient, merge_patch, SYSTEM_ATTRIBUTES
from .sql import SqlStore
