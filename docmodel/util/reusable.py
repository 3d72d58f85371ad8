from copy import copy


class Reusable:
    """ Make a reusable DocQuery

        A DocQuery parses its settings (like `force_filter`) when it's initialized,
        and its handlers can only take input once.
        This wrapper gives a fresh copy of the wrapped object on every attribute access,
        so the parsed settings are reused, and the input never is.

        Example:

            docquery = Reusable(DocQuery('users', dict(max_items=100)))
            docquery.query(filter='age >= 18').end()
            docquery.query(filter='age < 18').end()  # a different copy
    """
    __slots__ = ('__obj',)

    def __init__(self, obj):
        self.__obj = obj

    # copy-on-access
    def __getattr__(self, attr):
        return getattr(copy(self.__obj), attr)

    def __repr__(self):
        return 'Reusable({!r})'.format(self.__obj)
