import re

from ..exc import InvalidFieldError, InvalidQueryError


#: A field path: identifiers, optionally separated by dots ('address.zip')
FIELD_NAME_RX = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$')


def validate_field_name(field_name: str, where: str) -> str:
    """ Make sure that a field name can be put into a query

        Field names become attribute paths in a query (`doc.<field>`), so they are never passed as parameters.
        That's why they're limited to identifiers.

        :raises InvalidFieldError
    """
    if not isinstance(field_name, str) or not FIELD_NAME_RX.match(field_name):
        raise InvalidFieldError(field_name, where)
    return field_name


#: A collection name: letters, digits, underscores, dashes
COLLECTION_NAME_RX = re.compile(r'^[A-Za-z_][A-Za-z0-9_\-]{0,255}$')


def validate_collection_name(collection: str) -> str:
    """ Make sure that a collection name can be used as a table or a collection

        :raises InvalidQueryError
    """
    if not isinstance(collection, str) or not COLLECTION_NAME_RX.match(collection):
        raise InvalidQueryError('Invalid collection name: {!r}'.format(collection))
    return collection


class QueryHandlerBase:
    """ An implementation of a handler from DocQuery

        Every subclass will handle a single field from the Query object
    """

    #: Name of the QueryObject section that this object is capable of handling
    query_object_section_name = None

    def __init__(self, collection):
        """ Initialize the Query Object section handler with a collection name.

        This method does *not* receive any input data just yet, with the purpose of having an
        object that can be extended with some interesting defaults right at init time.

        :param collection: Name of the collection the query is made to
        :type collection: str

        NOTE: Any arguments that have default values will be treated as handler settings!!
        """
        #: The collection to handle the Query Object for
        self.collection = collection

        # Has the input() method been called already?
        self.input_received = False

    def __copy__(self):
        """ Handlers are copied by DocQuery so that their settings can be reused with different input """
        cls = self.__class__
        result = cls.__new__(cls)
        result.__dict__.update(self.__dict__)
        return result

    def input_prepare_query_object(self, query_object):
        """ Modify the Query Object before it is processed.

        Sometimes a handler would need to alter it.
        Here's its chance.

        This method is called before any input(), or validation, or anything.

        :param query_object: dict
        """
        return query_object

    def input(self, qo_value):
        """ Get a section of the Query object.

        The purpose of this method is to receive the input, validate it, and store as a public
        property so that external tools may export its value.

        :param qo_value: the value of the Query object field it's handling
        :rtype: QueryHandlerBase
        :raises InvalidQueryError
        """
        self.input_value = qo_value  # no copying. Try not to modify it.

        # Set the flag
        self.input_received = True

        # Make sure that input() can only be used once
        self.input = self.__raise_input_not_reusable

        return self

    def __raise_input_not_reusable(self, *args, **kwargs):
        raise RuntimeError("You can't use the {}.input() method twice. "
                           "copy() the handler!"
                           .format(self.__class__.__name__))

    def alter_query(self, query):
        """ Apply the Query Object section this handler is handling

        :param query: The query expression built so far
        :type query: docmodel.query.QueryExpression
        :rtype: docmodel.query.QueryExpression
        """
        raise NotImplementedError()

    def get_final_input_value(self):
        """ Get the final input of the handler """
        return self.input_value


def expressions_list(value):
    """ Normalize the input of list-handlers: a single expression becomes a list, blank entries of a list are dropped

        A single blank expression is kept: it's malformed, and the parser will complain.

        :type value: str | list[str] | tuple[str] | None
        :rtype: list
    """
    # Empty
    if not value:
        return []

    # A single expression: wrap it
    if not isinstance(value, (list, tuple)):
        return [value]

    # Drop blank strings
    return [v for v in value
            if not (isinstance(v, str) and not v.strip())]
