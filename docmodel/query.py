from copy import copy
from typing import NamedTuple, Optional, Tuple, Union, Iterable

from . import handlers
from .handlers import FilterExpression, SortKey
from .handlers.base import validate_collection_name
from .exc import InvalidQueryError
from .util import QuerySettingsHandler


class QueryExpression(NamedTuple):
    """ A store-agnostic query: what DocQuery produces, and what stores execute

        The pipeline is always: filter -> sort -> skip/limit -> return.
        Stores compile it into their own query language, with operands as bound parameters.
    """
    #: Collection to iterate over
    collection: str
    #: Predicates, AND-ed together
    filters: Tuple[FilterExpression, ...] = ()
    #: Sort keys; the first one is the primary key
    sorts: Tuple[SortKey, ...] = ()
    #: The window
    skip: int = 0
    limit: Optional[int] = None
    #: Fields to return; `None` for whole records
    projection: Optional[Tuple[str, ...]] = None
    #: Return the number of matching records instead of the records
    count: bool = False

    @property
    def is_scalar(self):
        """ Does the query give a single scalar value? """
        return self.count


class Pagination(NamedTuple):
    """ A skip/limit window """
    skip: int = 0
    limit: Optional[int] = 100


class DocQuery:
    """ Query Object -> QueryExpression

        Example:

            DocQuery('users').query(filter='age >= 18', sort='age DESC', limit=10).end()
    """

    def __init__(self, collection: str, handler_settings: dict = None):
        """ Init a query to a collection

        :param collection: Name of the collection
        :param handler_settings: Settings for Query Object handlers.
            These are just plain kwargs names for every handler object's __init__ method.
            See QuerySettingsDict for the list.

            To disable a handler, give its name mapped to a `False`.
            Example:

                sort_enabled=False
        """
        validate_collection_name(collection)

        # Init with the collection
        self._collection = collection

        # Initialize the settings
        self._handler_settings = QuerySettingsHandler(handler_settings or {})

        # Get ready: Query object handlers
        self._init_query_object_handlers()

    def __copy__(self):
        """ DocQuery can be reused: every copy gets its own copy of pristine handlers

            It actually makes sense to have a reusable DocQuery because settings, like force_filter,
            are parsed only once.
        """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)

        # Copy Query Object handlers
        for name in self.HANDLER_ATTR_NAMES:
            setattr(result, name, copy(getattr(result, name)))

        return result

    @property
    def collection(self):
        return self._collection

    def query(self, **query_object):
        """ Build a query from a Query Object

        :param project: Projection spec
        :param sort: Sorting spec
        :param filter: Filter expressions
        :param skip: Skip records
        :param limit: Limit records
        :param count: Count the number of records instead of returning them
        :raises InvalidQueryError: unknown Query Object operations provided (extra keys)
        :raises InvalidQueryError: syntax error for any of the Query Object sections
        :raises DisabledError: input provided for a disabled handler
        :rtype: DocQuery
        """
        # Prepare Query Object
        for handler_name, handler in self._handlers():
            query_object = handler.input_prepare_query_object(query_object)

        # Check if Query Object keys are all right
        invalid_keys = set(query_object.keys()) - self.HANDLER_NAMES
        if invalid_keys:
            raise InvalidQueryError(u'Unknown Query Object operations: {}'.format(', '.join(sorted(invalid_keys))))

        # Process every field with its method
        # Every handler should be invoked because they may have defaults even when no input was provided
        for handler_name, handler in self._handlers():
            # Query Object value for this handler
            input_value = query_object.get(handler_name, None)

            # Disabled handlers exception
            # But only test that if there actually was any input
            if input_value is not None:
                self._handler_settings.raise_if_not_handler_enabled(self._collection, handler_name)

            # Use the handler
            handler.input(input_value)

        # Done
        return self

    def end(self) -> QueryExpression:
        """ Get the resulting QueryExpression """
        q = QueryExpression(self._collection)

        # Apply every handler
        for handler_name, handler in self._handlers():
            q = handler.alter_query(q)

        return q

    def result_is_scalar(self):
        """ Test whether the result is a scalar value, like with count """
        return bool(self.handler_count.count)

    def get_final_query_object(self):
        """ Get the Query Object, as the handlers have understood it """
        return {name: handler.get_final_input_value()
                for name, handler in self._handlers()}

    def __repr__(self):
        return 'DocQuery({})'.format(self._collection)

    # region Query Object handlers

    _QO_HANDLER_PROJECT = handlers.DocProject
    _QO_HANDLER_SORT = handlers.DocSort
    _QO_HANDLER_FILTER = handlers.DocFilter
    _QO_HANDLER_LIMIT = handlers.DocLimit
    _QO_HANDLER_COUNT = handlers.DocCount

    HANDLER_NAMES = frozenset(('project',
                               'sort',
                               'filter',
                               'limit',
                               'count'))
    HANDLER_ATTR_NAMES = frozenset('handler_'+name
                                   for name in HANDLER_NAMES)

    def _handlers(self):
        """ Get the list of all (handler_name, handler) """
        return (
            # The ordering matters for input_prepare_query_object():
            # 1. 'limit' before 'count'
            #    Because 'limit' packs (skip, limit) under its own name, and 'count' removes it
            ('project', self.handler_project),
            ('sort', self.handler_sort),
            ('filter', self.handler_filter),
            ('limit', self.handler_limit),
            ('count', self.handler_count),
        )

    # for IDE completion
    handler_project = None  # type: docmodel.handlers.DocProject
    handler_sort = None  # type: docmodel.handlers.DocSort
    handler_filter = None  # type: docmodel.handlers.DocFilter
    handler_limit = None  # type: docmodel.handlers.DocLimit
    handler_count = None  # type: docmodel.handlers.DocCount

    def _init_query_object_handlers(self):
        """ Initialize every Query Object handler """
        for name in self.HANDLER_NAMES:
            handler_cls = getattr(self, '_QO_HANDLER_' + name.upper())
            handler_settings = self._handler_settings.get_settings(name, handler_cls)
            setattr(self, 'handler_' + name,
                    handler_cls(self._collection, **handler_settings))

        # Check settings
        self._handler_settings.raise_if_invalid_handler_settings(self)

    # endregion


def build_query(collection: str,
                filters: Union[str, Iterable, None] = None,
                sorts: Union[str, Iterable, None] = None,
                pagination: Union[Pagination, Tuple[int, Optional[int]], None] = None,
                projection: Union[str, Iterable[str], None] = None,
                count: bool = False) -> QueryExpression:
    """ Compose filters, sort keys, a window and a projection into a QueryExpression

        :param collection: Collection name
        :param filters: Filter expression(s): strings, or parsed FilterExpression
        :param sorts: Sort key(s): strings, or parsed SortKey
        :param pagination: (skip, limit)
        :param projection: Field names to return
        :param count: Make it a count query
        :raises InvalidQueryError
    """
    skip, limit = pagination or Pagination()
    return DocQuery(collection).query(
        filter=filters,
        sort=sorts,
        skip=skip,
        limit=limit,
        project=projection,
        count=count,
    ).end()
