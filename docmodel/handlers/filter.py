"""
### Filter Operation
Filtering corresponds to the `FILTER` part of a query.

A filter is a string of three parts: a field, an operator, and an operand:

```python
await model.find({
    'filter': 'age >= 18',
})
```

Several filters are given as a list; they are all AND-ed together:

```python
await model.find({
    'filter': ['age >= 18', 'age <= 25', 'sex == female'],
})
```

#### Operators

* `field == value` - equality check
* `field != value` - inequality check
* `field < value`, `field <= value` - less than, less or equal than
* `field > value`, `field >= value` - greater than, greater or equal than
* `field LIKE pattern` - case-insensitive pattern match: `%` matches any sequence, `_` matches a single character

Operators are case-insensitive: `like` and `LIKE` are the same thing.

#### Operands

* `null` is the null value
* A number is a number: `age == 18`, `rating > 4.5`, `balance < -1e3`, `n == 0`
* Anything else is a string. Quotes are optional, and are stripped:
    `name == John`, `name == "John"`, `name == '18'` (a string, not a number!)
* The operand is everything after the operator, so it may contain whitespace: `name == John Smith`

#### Nested fields
Use the dot-notation to reach into objects: `address.zip == 100098`.
"""

import math
import re
from typing import NamedTuple, Union

from .base import QueryHandlerBase, validate_field_name, expressions_list
from ..exc import InvalidExpressionError, UnsupportedOperatorError


# region Filter Expression

#: Supported operators, lower-cased
OPERATORS = frozenset(('==', '!=', '<', '<=', '>', '>=', 'like'))

# field, operator, operand: everything after the operator
_FILTER_RX = re.compile(r'^\s*(\S+)\s+(\S+)\s+(.*\S)\s*$', re.DOTALL)

# Decimal numeric literals. Note that Python's float() is more permissive ('1_000', 'nan', 'inf')
_INT_RX = re.compile(r'^[+-]?\d+$')
_NUMBER_RX = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$')

# One layer of quotes
_QUOTES_RX = re.compile(r'^["\']|["\']$')


class FilterExpression(NamedTuple):
    """ A single parsed predicate: `field operator operand` """
    field: str
    operator: str
    operand: Union[str, int, float, None]

    def __repr__(self):
        return '{} {} {!r}'.format(self.field, self.operator, self.operand)

    def __str__(self):
        """ Render the expression back into the filter syntax """
        return '{} {} {}'.format(self.field,
                                 self.operator.upper(),
                                 format_operand(self.operand))


def parse_operand(operand_src: str):
    """ Convert the textual operand into a typed value

        * `null` -> None
        * unquoted decimal number -> int | float
        * anything else -> str, with one layer of wrapping quotes removed

        :rtype: str | int | float | None
    """
    # null
    if operand_src == 'null':
        return None

    # Numbers
    # A quoted number is a string, but quotes do not match the numeric pattern anyway
    if _NUMBER_RX.match(operand_src):
        if _INT_RX.match(operand_src):
            return int(operand_src)
        num = float(operand_src)
        if math.isfinite(num):  # '1e999' stays a string
            return num

    # String
    return _QUOTES_RX.sub('', operand_src)


def format_operand(operand) -> str:
    """ Render a typed operand so that parse_operand() gives it back """
    if operand is None:
        return 'null'
    if isinstance(operand, (int, float)) and not isinstance(operand, bool):
        return repr(operand)
    return '"{}"'.format(operand)


def parse_filter(expr: str) -> FilterExpression:
    """ Parse a filter string: 'field operator operand'

        :raises InvalidExpressionError: the expression has less than 3 parts
        :raises InvalidFieldError: the field name is not an identifier
        :raises UnsupportedOperatorError: unknown operator
    """
    if not isinstance(expr, str):
        raise InvalidExpressionError(expr, 'filter', 'must be a string')

    # Split
    m = _FILTER_RX.match(expr)
    if not m:
        raise InvalidExpressionError(expr, 'filter')
    field, operator, operand_src = m.groups()

    # Validate
    validate_field_name(field, 'filter')

    operator = operator.lower()
    if operator not in OPERATORS:
        raise UnsupportedOperatorError(operator, expr)

    # Done
    return FilterExpression(field, operator, parse_operand(operand_src))

# endregion


class DocFilter(QueryHandlerBase):
    """ Filter expressions

        * None: no filtering
        * 'a >= 1': a single expression
        * ['a >= 1', 'b LIKE x%']: a list of expressions, AND-ed together

        Already parsed FilterExpression objects are accepted as well.
    """

    query_object_section_name = 'filter'

    def __init__(self, collection, force_filter=None):
        """ Init a filter

        :param collection: Collection name
        :param force_filter: Filter expression(s) that will be forcefully applied to every query.
            They are AND-ed with whatever the user provides.
        :type force_filter: str | list[str] | None
        """
        super(DocFilter, self).__init__(collection)

        # Extra configuration: force_filter
        # Parse it right away: for the sake of validation, and to do it only once
        self.force_filter = self._parse_expressions(force_filter)

        # On input
        #: list[FilterExpression]
        self.expressions = None

    def input(self, criteria):
        super(DocFilter, self).input(criteria)
        self.expressions = self._parse_expressions(criteria) + self.force_filter
        return self

    def _parse_expressions(self, criteria):
        """ Parse the input and return a list of FilterExpression

        :type criteria: str | FilterExpression | list | None
        :rtype: list[FilterExpression]
        """
        return [
            e if isinstance(e, FilterExpression) else parse_filter(e)
            for e in expressions_list(criteria)
        ]

    def alter_query(self, query):
        if not self.expressions:
            return query  # short-circuit
        return query._replace(filters=tuple(self.expressions))

    def get_final_input_value(self):
        return [str(e) for e in self.expressions]
