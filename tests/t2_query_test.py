import unittest
from copy import copy

from sqlalchemy import MetaData, Table, Column, Integer, String, JSON

from docmodel import DocQuery, QueryExpression, Pagination, build_query, FilterExpression, SortKey, ASC, DESC
from docmodel.compilers import compile_aql, compile_select, compile_example, project_document
from docmodel.compilers.aql import MAX_LIMIT
from docmodel.exc import *
from docmodel.util import Reusable, QuerySettingsDict
from .util import stmt2sql, TestQueryStringsMixin


metadata = MetaData()
test_table = Table(
    'test', metadata,
    Column('id', Integer, primary_key=True),
    Column('key', String(255)),
    Column('doc', JSON),
)


class QueryTest(TestQueryStringsMixin, unittest.TestCase):
    """ Test DocQuery and build_query() """

    longMessage = True
    maxDiff = None

    def test_docquery(self):
        """ Test DocQuery: Query Object -> QueryExpression """
        # === Test: empty Query Object: default limit
        q = DocQuery('test').query().end()
        self.assertEqual(q, QueryExpression('test', limit=100))
        self.assertFalse(q.is_scalar)

        # === Test: everything
        q = DocQuery('test').query(
            filter=['a >= 2', 'b LIKE x%'],
            sort=['a DESC', 'b 1'],
            skip=10,
            limit=5,
            project='a b',
        ).end()
        self.assertEqual(q.collection, 'test')
        self.assertEqual(q.filters, (FilterExpression('a', '>=', 2), FilterExpression('b', 'like', 'x%')))
        self.assertEqual(q.sorts, (SortKey('a', DESC), SortKey('b', ASC)))
        self.assertEqual((q.skip, q.limit), (10, 5))
        self.assertEqual(q.projection, ('_key', 'a', 'b'))
        self.assertFalse(q.count)

        # === Test: single expressions, blank entries
        q = DocQuery('test').query(filter='a == 1', sort=['', 'a 0', '  ']).end()
        self.assertEqual(q.filters, (FilterExpression('a', '==', 1),))
        self.assertEqual(q.sorts, (SortKey('a', DESC),))

        # === Test: parsed expressions are accepted
        q = DocQuery('test').query(filter=[FilterExpression('a', '==', 0)], sort=SortKey('a', ASC)).end()
        self.assertEqual(q.filters, (FilterExpression('a', '==', 0),))
        self.assertEqual(q.sorts, (SortKey('a', ASC),))

        # === Test: projection always has `_key` first, and no duplicates
        q = DocQuery('test').query(project=['b', '_key', 'a', 'b']).end()
        self.assertEqual(q.projection, ('_key', 'b', 'a'))

        # === Test: count drops sorting, window, and projection
        dq = DocQuery('test').query(filter='a > 1', sort='a DESC', skip=10, limit=5, project='a', count=True)
        self.assertTrue(dq.result_is_scalar())
        q = dq.end()
        self.assertEqual(q, QueryExpression('test', filters=(FilterExpression('a', '>', 1),), count=True))
        self.assertTrue(q.is_scalar)

        # === Test: count=False is no count
        dq = DocQuery('test').query(count=False)
        self.assertFalse(dq.result_is_scalar())
        self.assertFalse(dq.end().count)

    def test_docquery_errors(self):
        """ Test: invalid Query Objects """
        # Unknown keys
        with self.assertRaises(InvalidQueryError) as e:
            DocQuery('test').query(filters='a == 1')
        self.assertIn('filters', str(e.exception))

        # Invalid collection
        with self.assertRaises(InvalidQueryError):
            DocQuery('a.b')

        # Expressions
        with self.assertRaises(InvalidExpressionError):
            DocQuery('test').query(filter='test >')
        with self.assertRaises(UnsupportedOperatorError):
            DocQuery('test').query(filter=['a == 1', 'test ~= 2'])
        with self.assertRaises(InvalidSortDirectionError):
            DocQuery('test').query(sort='test UP')

        # A single blank expression is malformed; blank entries of a list are not
        with self.assertRaises(InvalidExpressionError):
            DocQuery('test').query(filter='   ')
        with self.assertRaises(InvalidExpressionError):
            DocQuery('test').query(sort=' ')
        with self.assertRaises(InvalidExpressionError):
            DocQuery('test').query(filter='  ', count=True)
        self.assertEqual(DocQuery('test').query(filter=['  '], sort=[' ']).end().filters, ())

        # Projection: top-level fields only
        with self.assertRaises(InvalidFieldError):
            DocQuery('test').query(project=['a.b'])
        with self.assertRaises(InvalidQueryError):
            DocQuery('test').query(project={'a': 1})

        # Count
        with self.assertRaises(InvalidQueryError):
            DocQuery('test').query(count='yes')

    def test_limit(self):
        """ Test: skip & limit """
        window = lambda settings=None, **qo: (lambda q: (q.skip, q.limit))(DocQuery('test', settings).query(**qo).end())

        # Defaults
        self.assertEqual(window(), (0, 100))
        self.assertEqual(window(skip=5), (5, 100))
        self.assertEqual(window(limit=5), (0, 5))
        self.assertEqual(window(skip=None, limit=None), (0, 100))

        # Strings are integers
        self.assertEqual(window(skip='5', limit=' 10 '), (5, 10))

        # Bounds
        self.assertEqual(window(skip=0, limit=1), (0, 1))
        for qo in (dict(skip=-1), dict(limit=0), dict(limit=-5), dict(skip='-1')):
            with self.assertRaises(InvalidQueryError, msg=qo):
                window(**qo)

        # Types
        for qo in (dict(skip='abc'), dict(limit=1.5), dict(limit=True), dict(skip=[1])):
            with self.assertRaises(InvalidQueryError, msg=qo):
                window(**qo)

        # Settings: max_items
        self.assertEqual(window(dict(max_items=50)), (0, 50))
        self.assertEqual(window(dict(max_items=50), limit=10), (0, 10))
        self.assertEqual(window(dict(max_items=50), limit=1000), (0, 50))
        self.assertEqual(window(dict(max_items=50, default_limit=None)), (0, 50))

        # Settings: default_limit
        self.assertEqual(window(dict(default_limit=20)), (0, 20))
        self.assertEqual(window(dict(default_limit=None)), (0, None))
        self.assertEqual(window(dict(default_limit=None), skip=3), (3, None))

    def test_settings(self):
        """ Test: handler settings """
        # === Test: force_filter is AND-ed with the user's filters
        dq = DocQuery('test', dict(force_filter='deleted == null'))
        self.assertEqual(copy(dq).query().end().filters, (FilterExpression('deleted', '==', None),))
        self.assertEqual(copy(dq).query(filter='a == 1').end().filters,
                         (FilterExpression('a', '==', 1), FilterExpression('deleted', '==', None)))

        # force_filter is validated right away
        with self.assertRaises(InvalidExpressionError):
            DocQuery('test', dict(force_filter='deleted =='))

        # === Test: default_projection
        dq = DocQuery('test', dict(default_projection=['a']))
        self.assertEqual(copy(dq).query().end().projection, ('_key', 'a'))
        self.assertEqual(copy(dq).query(project='b').end().projection, ('_key', 'b'))

        # === Test: disabled handlers
        settings = QuerySettingsDict(sort_enabled=False, count_enabled=False)
        DocQuery('test', settings).query(filter='a == 1')  # ok
        with self.assertRaises(DisabledError):
            DocQuery('test', settings).query(sort='a ASC')
        with self.assertRaises(DisabledError):
            DocQuery('test', settings).query(count=True)

        # === Test: unknown settings
        with self.assertRaises(KeyError):
            DocQuery('test', dict(max_itemz=10))

    def test_reusable(self):
        """ Test: a DocQuery can be reused via copy() """
        dq = DocQuery('test', dict(max_items=10))

        # Handlers only take input once
        used = copy(dq).query(filter='a == 1')
        with self.assertRaises(RuntimeError):
            used.handler_filter.input('a == 2')

        # Copies are independent
        rq = Reusable(dq)
        q1 = rq.query(filter='a == 1').end()
        q2 = rq.query(filter='a == 2', count=True).end()
        q3 = rq.query().end()
        self.assertEqual(q1.filters, (FilterExpression('a', '==', 1),))
        self.assertEqual(q1.limit, 10)
        self.assertEqual(q2.filters, (FilterExpression('a', '==', 2),))
        self.assertEqual((q2.count, q2.limit), (True, None))
        self.assertEqual(q3, QueryExpression('test', limit=10))

    def test_final_query_object(self):
        """ Test: get_final_query_object() """
        dq = DocQuery('test').query(filter='name LIKE a b%', sort='a 0', skip='5', project='a')
        self.assertEqual(dq.get_final_query_object(), {
            'project': ['_key', 'a'],
            'sort': ['a DESC'],
            'filter': ['name LIKE "a b%"'],
            'limit': {'skip': 5, 'limit': 100},
            'count': None,
        })

    def test_build_query(self):
        """ Test build_query() """
        # Defaults
        self.assertEqual(build_query('test'), QueryExpression('test', skip=0, limit=100))

        # Everything
        q = build_query('test', ['a >= 2', 'b != null'], 'a ASC', Pagination(5, 10), ['a'])
        self.assertEqual(q, QueryExpression(
            'test',
            filters=(FilterExpression('a', '>=', 2), FilterExpression('b', '!=', None)),
            sorts=(SortKey('a', ASC),),
            skip=5,
            limit=10,
            projection=('_key', 'a'),
        ))

        # Tuple pagination
        q = build_query('test', pagination=(20, 30))
        self.assertEqual((q.skip, q.limit), (20, 30))

        # Count
        q = build_query('test', 'a == 0', 'a ASC', (5, 10), count=True)
        self.assertEqual(q, QueryExpression('test', filters=(FilterExpression('a', '==', 0),), count=True))

        # Errors are raised right away
        with self.assertRaises(InvalidExpressionError):
            build_query('test', 'a >')
        with self.assertRaises(InvalidQueryError):
            build_query('test', pagination=(-1, 10))

        # Queries are immutable and hashable
        self.assertEqual(hash(build_query('test', 'a == 1')), hash(build_query('test', ['a == 1'])))


class AqlCompilerTest(unittest.TestCase):
    """ Test compile_aql() """

    longMessage = True
    maxDiff = None

    def test_compile(self):
        # === Test: everything
        text, bind_vars = compile_aql(build_query(
            'test', ['a >= 2', 'b LIKE x%', 'c.d == null'], ['a DESC', 'b 1'], (10, 5), 'a b'))
        self.assertEqual(text, '\n'.join((
            'FOR doc IN @@collection',
            '  FILTER doc.`a` >= @value0',
            '  FILTER LIKE(doc.`b`, @value1, true)',
            '  FILTER doc.`c`.`d` == @value2',
            '  SORT doc.`a` DESC, doc.`b` ASC',
            '  LIMIT @skip, @limit',
            '  RETURN KEEP(doc, @projection)',
        )))
        self.assertEqual(bind_vars, {
            '@collection': 'test',
            'value0': 2,
            'value1': 'x%',
            'value2': None,
            'skip': 10,
            'limit': 5,
            'projection': ['_key', 'a', 'b'],
        })

        # === Test: every operator
        for op in ('==', '!=', '<', '<=', '>', '>='):
            text, bind_vars = compile_aql(build_query('test', 'a {} 1'.format(op)))
            self.assertIn('  FILTER doc.`a` {} @value0'.format(op), text)

        # === Test: the plain query
        text, bind_vars = compile_aql(QueryExpression('test'))
        self.assertEqual(text, 'FOR doc IN @@collection\n  RETURN doc')
        self.assertEqual(bind_vars, {'@collection': 'test'})

        # === Test: skip without limit
        text, bind_vars = compile_aql(QueryExpression('test', skip=5))
        self.assertIn('LIMIT @skip, @limit', text)
        self.assertEqual((bind_vars['skip'], bind_vars['limit']), (5, MAX_LIMIT))

        # === Test: count
        text, bind_vars = compile_aql(build_query('test', 'a == 2', 'a ASC', (5, 10), 'a', count=True))
        self.assertEqual(text, '\n'.join((
            'FOR doc IN @@collection',
            '  FILTER doc.`a` == @value0',
            '  COLLECT WITH COUNT INTO count',
            '  RETURN count',
        )))
        self.assertEqual(bind_vars, {'@collection': 'test', 'value0': 2})

    def test_operands_are_bound(self):
        """ Test: operands never make it into the query text """
        text, bind_vars = compile_aql(build_query('test', 'a == "x" || true'))
        self.assertNotIn('true', text)
        self.assertEqual(bind_vars['value0'], 'x" || true')


class SqlCompilerTest(TestQueryStringsMixin, unittest.TestCase):
    """ Test compile_select() """

    longMessage = True
    maxDiff = None

    def test_compile_select(self):
        sql = lambda *args, **kwargs: stmt2sql(compile_select(build_query('test', *args, **kwargs), test_table),
                                               literal=True)

        # === Test: filter, sort, window
        self.assertQuery(sql(['a >= 2', 'b == x'], ['a DESC', 'b ASC'], (10, 5)),
                         "SELECT test.doc",
                         "FROM test",
                         "json_extract(test.doc, '$.a') >= 2",
                         "json_extract(test.doc, '$.b') = 'x'",
                         "ORDER BY json_extract(test.doc, '$.a') DESC, json_extract(test.doc, '$.b') ASC, test.id ASC",
                         "LIMIT 5 OFFSET 10")

        # === Test: insertion order is always the last sort key
        self.assertQuery(sql(),
                         "ORDER BY test.id ASC",
                         "LIMIT 100")

        # === Test: nested fields
        self.assertQuery(sql('a.b > 1.5'), "json_extract(test.doc, '$.a.b') > 1.5")

        # === Test: missing fields are lower than any value
        self.assertQuery(sql('a.b < 1.5'),
                         "json_extract(test.doc, '$.a.b') IS NULL OR json_extract(test.doc, '$.a.b') < 1.5")
        self.assertQuery(sql('a <= 2'),
                         "json_extract(test.doc, '$.a') IS NULL OR json_extract(test.doc, '$.a') <= 2")

        # === Test: null operands
        self.assertQuery(sql('a == null'), "json_extract(test.doc, '$.a') IS NULL")
        self.assertQuery(sql('a != null'), "json_extract(test.doc, '$.a') IS NOT NULL")
        self.assertQuery(sql('a > null'), "json_extract(test.doc, '$.a') IS NOT NULL")
        self.assertQuery(sql('a <= null'), "json_extract(test.doc, '$.a') IS NULL")

        # === Test: like
        self.assertQuery(sql('a LIKE x%'), "lower(json_extract(test.doc, '$.a')) LIKE lower('x%')")

        # === Test: count
        qs = sql('a == 2', 'a DESC', (10, 5), count=True)
        self.assertQuery(qs,
                         "SELECT count(*)",
                         "FROM test",
                         "json_extract(test.doc, '$.a') = 2")
        self.assertNotIn('ORDER BY', qs)
        self.assertNotIn('LIMIT', qs)

    def test_operands_are_bound(self):
        """ Test: operands never make it into the query text """
        qs = stmt2sql(compile_select(build_query('test', "a == x'; DROP TABLE test; --"), test_table))
        self.assertNotIn('DROP', qs)

    def test_compile_example(self):
        """ Test compile_example() """
        conditions = compile_example({'a': 1, 'b': {'c': 'x'}, 'd': None, 'e': [1, 2], 'f': {}}, test_table)
        self.assertEqual(
            [stmt2sql(c, literal=True) for c in conditions],
            [
                "json_extract(test.doc, '$.a') = 1",
                "json_extract(test.doc, '$.b.c') = 'x'",
                "json_extract(test.doc, '$.d') IS NULL",
                "json_extract(test.doc, '$.e') = json('[1, 2]')",
                "json_extract(test.doc, '$.f') = json('{}')",
            ]
        )

        # Invalid field names
        with self.assertRaises(InvalidFieldError):
            compile_example({'a-b': 1}, test_table)
        with self.assertRaises(InvalidFieldError):
            compile_example({'a': {'$gt': 1}}, test_table)

    def test_project_document(self):
        """ Test project_document() """
        doc = {'_key': '1', '_id': 'test/1', 'a': 1, 'b': {'c': 2}}
        self.assertIs(project_document(QueryExpression('test'), doc), doc)
        self.assertEqual(project_document(build_query('test', projection='b z'), doc), {'_key': '1', 'b': {'c': 2}})
