class BaseDocModelException(Exception):
    pass


class InvalidQueryError(BaseDocModelException):
    """ Invalid input provided by the User """

    def __init__(self, err: str):
        super(InvalidQueryError, self).__init__('Query object error: {err}'.format(err=err))


class DisabledError(InvalidQueryError):
    """ The feature is disabled """


class InvalidExpressionError(InvalidQueryError):
    """ A filter or sort expression could not be split into its parts """

    def __init__(self, expression: str, where: str, err: str = None):
        self.expression = expression
        self.where = where

        super(InvalidExpressionError, self).__init__(
            'Wrong {where} - {expression!r}{err}'.format(
                where=where,
                expression=expression,
                err=': ' + err if err else '')
        )


class InvalidFieldError(InvalidExpressionError):
    """ Expression mentioned a field name that can't be used in a query """

    def __init__(self, field: str, where: str):
        self.field = field

        super(InvalidFieldError, self).__init__(
            field, where,
            'field names are identifiers, optionally separated by dots')


class UnsupportedOperatorError(InvalidQueryError):
    """ Filter expression used an unknown comparison operator """

    def __init__(self, operator: str, expression: str):
        self.operator = operator
        self.expression = expression

        super(UnsupportedOperatorError, self).__init__(
            'Unsupported operator "{operator}" in filter {expression!r}'.format(
                operator=operator,
                expression=expression)
        )


class InvalidSortDirectionError(InvalidQueryError):
    """ Sort expression used an unknown direction """

    def __init__(self, direction: str, expression: str):
        self.direction = direction
        self.expression = expression

        super(InvalidSortDirectionError, self).__init__(
            'Invalid sort direction "{direction}" in {expression!r}; '
            'use one of: ASC, DESC, 1, 0'.format(
                direction=direction,
                expression=expression)
        )


class ValidationError(BaseDocModelException):
    """ Records did not satisfy the schema

        All offending fields of all records are collected into `errors`:
        a list of dicts with `loc` (record index first), `msg`, and `type`.
    """

    def __init__(self, errors: list):
        self.errors = errors

        super(ValidationError, self).__init__(
            'Validation failed: {}'.format('; '.join(
                '{}: {}'.format('.'.join(str(l) for l in e['loc']), e['msg'])
                for e in errors
            ))
        )


class StoreError(BaseDocModelException):
    """ The store client failed

        The driver exception is available as `original` and as `__cause__`.
    """

    def __init__(self, message: str, original: Exception = None):
        self.original = original
        super(StoreError, self).__init__(message)


class DocumentNotFoundError(StoreError):
    """ No document with the given key """

    def __init__(self, collection: str, key: str):
        self.collection = collection
        self.key = key

        super(DocumentNotFoundError, self).__init__(
            'Document "{key}" not found in collection "{collection}"'.format(
                key=key,
                collection=collection)
        )
