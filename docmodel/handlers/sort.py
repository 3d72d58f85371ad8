"""
### Sort Operation

Sorting corresponds to the `SORT` part of a query.

A sort expression is a field name followed by a direction:

```python
await model.find({
    # sort by age, descending;
    # then sort by first name, alphabetically
    'sort': ['age DESC', 'first_name ASC'],
})
```

#### Directions

* `ASC` or `1`: ascending
* `DESC` or `0`: descending

Directions are case-insensitive. The first sort key is the primary one; every subsequent key breaks ties of the prior ones.
"""

from typing import NamedTuple

from .base import QueryHandlerBase, validate_field_name, expressions_list
from ..exc import InvalidExpressionError, InvalidSortDirectionError


# region Sort Key

ASC = 'ASC'
DESC = 'DESC'

#: Direction tokens (lower-cased) => direction
DIRECTIONS = {
    'asc': ASC,
    'desc': DESC,
    '1': ASC,
    '0': DESC,
}


class SortKey(NamedTuple):
    """ A single parsed sort key: `field direction` """
    field: str
    direction: str

    @property
    def is_desc(self):
        return self.direction == DESC

    def __str__(self):
        return '{} {}'.format(self.field, self.direction)


def parse_sort(expr: str) -> SortKey:
    """ Parse a sort string: 'field direction'

        :raises InvalidExpressionError: the expression is not made of exactly 2 tokens
        :raises InvalidFieldError: the field name is not an identifier
        :raises InvalidSortDirectionError: unknown direction
    """
    if not isinstance(expr, str):
        raise InvalidExpressionError(expr, 'sort', 'must be a string')

    # Split by whitespace
    tokens = expr.split()
    if len(tokens) != 2:
        raise InvalidExpressionError(expr, 'sort')
    field, direction = tokens

    # Validate
    validate_field_name(field, 'sort')

    try:
        direction = DIRECTIONS[direction.lower()]
    except KeyError:
        raise InvalidSortDirectionError(direction, expr)

    # Done
    return SortKey(field, direction)

# endregion


class DocSort(QueryHandlerBase):
    """ Sorting

        * None: no sorting
        * 'a DESC': a single sort key
        * ['a DESC', 'b 1']: multiple sort keys, applied in order

        Already parsed SortKey objects are accepted as well.
    """

    query_object_section_name = 'sort'

    def __init__(self, collection):
        super(DocSort, self).__init__(collection)

        # On input
        #: list[SortKey]
        self.sort_keys = None

    def _parse_sort_keys(self, spec):
        """ Parse the input and return a list of SortKey

        :rtype: list[SortKey]
        """
        return [
            e if isinstance(e, SortKey) else parse_sort(e)
            for e in expressions_list(spec)
        ]

    def input(self, sort_spec):
        super(DocSort, self).input(sort_spec)
        self.sort_keys = self._parse_sort_keys(sort_spec)
        return self

    def alter_query(self, query):
        if not self.sort_keys:
            return query  # short-circuit
        return query._replace(sorts=tuple(self.sort_keys))

    def get_final_input_value(self):
        return [str(k) for k in self.sort_keys]
