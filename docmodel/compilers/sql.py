""" Compile a QueryExpression into an SqlAlchemy SELECT over a table of JSON documents

    The table is expected to have:

    * `id`: an autoincrement primary key, which gives the insertion order
    * `doc`: a JSON column with the whole document

    Fields are reached with `json_extract(doc, '$.<path>')`, so this works on SQLite and MySQL.
    The comparison semantics follow those of AQL as closely as SQL lets us:

    * A `null` operand compares to missing fields as well: `a == null` is `IS NULL`
    * `!=` is `IS DISTINCT FROM`: `a != 2` selects documents without `a`
    * `null` is lower than any other value: `a > null` is `IS NOT NULL`, and `a < 2` selects documents without `a`
    * LIKE is case-insensitive, and `\\` is the escape character
"""

import json

from sqlalchemy import func, select, true, false
from sqlalchemy.sql.expression import and_, or_

from ..query import QueryExpression
from ..handlers.base import validate_field_name


# Filter operators
# operator => lambda column, value
_operators = {
    '==':  lambda col, val: col.is_(None) if val is None else col == val,
    '!=':  lambda col, val: col.isnot(None) if val is None else col.is_distinct_from(val),
    # `null` is the lowest value
    '<':   lambda col, val: false() if val is None else or_(col.is_(None), col < val),
    '<=':  lambda col, val: col.is_(None) if val is None else or_(col.is_(None), col <= val),
    '>':   lambda col, val: col.isnot(None) if val is None else col > val,
    '>=':  lambda col, val: true() if val is None else col >= val,
    'like': lambda col, val: col.ilike('' if val is None else str(val), escape='\\'),
}


def field_column(table, field: str):
    """ Get an SQL expression for a document field: 'a.b' -> json_extract(doc, '$.a.b') """
    return func.json_extract(table.c.doc, '$.' + field)


def compile_conditions(query: QueryExpression, table):
    """ Compile query filters into a list of SQL conditions """
    return [
        _operators[e.operator](field_column(table, e.field), e.operand)
        for e in query.filters
    ]


def compile_select(query: QueryExpression, table):
    """ Compile a query into a SELECT

        For a count query, the SELECT gives a scalar.
        Otherwise it selects the `doc` column; projections are applied to the loaded documents.
        See: project_document()

        :rtype: sqlalchemy.sql.Select
    """
    conditions = compile_conditions(query, table)

    # Count
    if query.count:
        stmt = select(func.count()).select_from(table)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return stmt

    # Filter
    stmt = select(table.c.doc)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    # Sort, then the insertion order: it breaks the remaining ties
    order_by = [
        field_column(table, k.field).desc() if k.is_desc else field_column(table, k.field).asc()
        for k in query.sorts
    ]
    order_by.append(table.c.id.asc())
    stmt = stmt.order_by(*order_by)

    # Window
    if query.skip:
        stmt = stmt.offset(query.skip)
    if query.limit is not None:
        stmt = stmt.limit(query.limit)

    return stmt


def project_document(query: QueryExpression, doc: dict) -> dict:
    """ Apply the projection of a query to a loaded document. Missing fields are omitted. """
    if not query.projection:
        return doc
    return {name: doc[name] for name in query.projection if name in doc}


def flatten_example(pattern: dict, prefix: str = ''):
    """ Flatten a by-example pattern into (path, value) pairs

        Nested objects are matched attribute by attribute:
        {'a': {'b': 1}} matches every document where `a.b == 1`

        :rtype: list[tuple[str, object]]
    """
    pairs = []
    for name, value in pattern.items():
        path = prefix + name
        validate_field_name(path, 'example')
        if isinstance(value, dict) and value:
            pairs.extend(flatten_example(value, path + '.'))
        else:
            pairs.append((path, value))
    return pairs


def compile_example(pattern: dict, table):
    """ Compile a by-example pattern into a list of SQL conditions

        :raises InvalidFieldError: a key is not a valid field name
    """
    conditions = []
    for path, value in flatten_example(pattern):
        col = field_column(table, path)
        if value is None:
            conditions.append(col.is_(None))
        elif isinstance(value, (list, dict)):
            # json_extract() gives minified JSON text for arrays and objects; so does json()
            conditions.append(col == func.json(json.dumps(value)))
        else:
            conditions.append(col == value)
    return conditions
