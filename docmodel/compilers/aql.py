""" Compile a QueryExpression into AQL, the query language of ArangoDB

    Example:

        FOR doc IN @@collection
          FILTER doc.`test` >= @value0
          SORT doc.`test` ASC
          LIMIT @skip, @limit
          RETURN doc

    Operands and the collection name are bind variables.
    Field paths are validated identifiers, rendered as backtick-quoted attribute accesses.
"""

from typing import Tuple

from ..query import QueryExpression


#: Document alias used by the FOR loop
DOC_ALIAS = 'doc'

#: AQL wants a count whenever there's an offset
MAX_LIMIT = 2 ** 53 - 1

# Filter operators
# operator => lambda field_expr, bind_var_expr
_operators = {
    '==': lambda f, v: '{} == {}'.format(f, v),
    '!=': lambda f, v: '{} != {}'.format(f, v),
    '<':  lambda f, v: '{} < {}'.format(f, v),
    '<=': lambda f, v: '{} <= {}'.format(f, v),
    '>':  lambda f, v: '{} > {}'.format(f, v),
    '>=': lambda f, v: '{} >= {}'.format(f, v),
    # case-insensitive
    'like': lambda f, v: 'LIKE({}, {}, true)'.format(f, v),
}


def field_path(field: str) -> str:
    """ 'a.b' -> doc.`a`.`b` """
    return '.'.join([DOC_ALIAS] + ['`{}`'.format(name) for name in field.split('.')])


def compile_aql(query: QueryExpression) -> Tuple[str, dict]:
    """ Compile a query into AQL

        :return: (query string, bind vars)
    """
    lines = ['FOR {} IN @@collection'.format(DOC_ALIAS)]
    bind_vars = {'@collection': query.collection}

    # Filter
    for i, e in enumerate(query.filters):
        var_name = 'value{}'.format(i)
        bind_vars[var_name] = e.operand
        lines.append('  FILTER ' + _operators[e.operator](field_path(e.field), '@' + var_name))

    # Count: no sorting, no window
    if query.count:
        lines.append('  COLLECT WITH COUNT INTO count')
        lines.append('  RETURN count')
        return '\n'.join(lines), bind_vars

    # Sort
    if query.sorts:
        lines.append('  SORT ' + ', '.join('{} {}'.format(field_path(k.field), k.direction)
                                           for k in query.sorts))

    # Window
    if query.skip or query.limit is not None:
        bind_vars['skip'] = query.skip or 0
        bind_vars['limit'] = query.limit if query.limit is not None else MAX_LIMIT
        lines.append('  LIMIT @skip, @limit')

    # Return
    if query.projection:
        bind_vars['projection'] = list(query.projection)
        lines.append('  RETURN KEEP({}, @projection)'.format(DOC_ALIAS))
    else:
        lines.append('  RETURN {}'.format(DOC_ALIAS))

    return '\n'.join(lines), bind_vars
