import unittest

from docmodel.handlers import parse_filter, parse_sort, FilterExpression, SortKey, ASC, DESC
from docmodel.handlers.filter import parse_operand, format_operand
from docmodel.handlers.base import expressions_list, validate_collection_name
from docmodel.exc import *


class ParserTest(unittest.TestCase):
    """ Test filter & sort expressions """

    longMessage = True
    maxDiff = None

    def test_parse_filter(self):
        """ Test parse_filter() """
        def test(expr, *expected):
            self.assertEqual(parse_filter(expr), FilterExpression(*expected), expr)

        # === Test: operators
        test('test == 2', 'test', '==', 2)
        test('test != 2', 'test', '!=', 2)
        test('test < 2', 'test', '<', 2)
        test('test <= 2', 'test', '<=', 2)
        test('test > 2', 'test', '>', 2)
        test('test >= 2', 'test', '>=', 2)
        test('name like qwe%', 'name', 'like', 'qwe%')

        # === Test: operators are case-insensitive
        test('name LIKE qwe%', 'name', 'like', 'qwe%')
        test('name Like qwe%', 'name', 'like', 'qwe%')

        # === Test: extra whitespace
        test('  test   >=   2  ', 'test', '>=', 2)
        test('test\t==\t2', 'test', '==', 2)

        # === Test: the operand keeps its inner whitespace
        test('name LIKE qwe 3%', 'name', 'like', 'qwe 3%')
        test('name == John  Smith', 'name', '==', 'John  Smith')

        # === Test: nested fields
        test('address.zip == 100098', 'address.zip', '==', 100098)
        test('_key == abc', '_key', '==', 'abc')

    def test_parse_operand(self):
        """ Test operand typing """
        def test(src, expected):
            value = parse_operand(src)
            self.assertEqual(value, expected, src)
            self.assertIs(type(value), type(expected), src)

        # null
        test('null', None)
        test('NULL', 'NULL')  # case-sensitive
        test('"null"', 'null')  # quoted

        # Numbers
        test('2', 2)
        test('-2', -2)
        test('+2', 2)
        test('1.5', 1.5)
        test('.5', 0.5)
        test('-1e3', -1000.0)
        test('2.5E-1', 0.25)

        # Zero is a number
        test('0', 0)
        test('-0', 0)
        test('0.0', 0.0)

        # Not numbers
        test('1e999', '1e999')  # not finite
        test('inf', 'inf')
        test('nan', 'nan')
        test('0x10', '0x10')
        test('1_000', '1_000')
        test('1.2.3', '1.2.3')

        # Quoted numbers are strings
        test('"2"', '2')
        test("'2'", '2')
        test("'0'", '0')

        # Strings: one layer of quotes is removed
        test('abc', 'abc')
        test('"abc"', 'abc')
        test("'abc'", 'abc')
        test('""abc""', '"abc"')
        test('"a b"', 'a b')
        test('"abc', 'abc')
        test("it's", "it's")

    def test_format_operand(self):
        """ Test: operands rendered back parse into the same value """
        for value in (None, 0, 2, -1.5, 'abc', '2', 'a b', 'null'):
            self.assertEqual(parse_operand(format_operand(value)), value, value)

        self.assertEqual(str(parse_filter('name LIKE qwe 3%')), 'name LIKE "qwe 3%"')
        self.assertEqual(str(parse_filter('n == 0')), 'n == 0')
        self.assertEqual(str(parse_filter('n != null')), 'n != null')

    def test_parse_filter_errors(self):
        """ Test: malformed filters """
        # Too few parts
        for expr in ('test >', 'test', '', '   ', '>= 2'):
            with self.assertRaises(InvalidExpressionError, msg=expr) as e:
                parse_filter(expr)
            self.assertEqual(e.exception.expression, expr)
            self.assertIn(repr(expr), str(e.exception))

        # Not a string
        with self.assertRaises(InvalidExpressionError):
            parse_filter(123)

        # Unknown operators
        for expr, op in (('test ~= 2', '~='), ('test = 2', '='), ('test IN 1', 'in'), ('test <> 2', '<>')):
            with self.assertRaises(UnsupportedOperatorError, msg=expr) as e:
                parse_filter(expr)
            self.assertEqual(e.exception.operator, op)
            self.assertIn(op, str(e.exception))

        # Invalid field names
        for expr in ('a-b == 1', 'doc["a"] == 1', '1a == 1', 'a. == 1', 'a..b == 1', 'a`b == 1'):
            with self.assertRaises(InvalidFieldError, msg=expr):
                parse_filter(expr)

        # All of them are InvalidQueryError
        self.assertTrue(issubclass(InvalidExpressionError, InvalidQueryError))
        self.assertTrue(issubclass(InvalidFieldError, InvalidExpressionError))
        self.assertTrue(issubclass(UnsupportedOperatorError, InvalidQueryError))
        self.assertTrue(issubclass(InvalidSortDirectionError, InvalidQueryError))

    def test_parse_sort(self):
        """ Test parse_sort() """
        def test(expr, *expected):
            self.assertEqual(parse_sort(expr), SortKey(*expected), expr)

        # === Test: directions
        test('test ASC', 'test', ASC)
        test('test DESC', 'test', DESC)
        test('test 1', 'test', ASC)
        test('test 0', 'test', DESC)

        # === Test: case-insensitive
        test('test asc', 'test', ASC)
        test('test Desc', 'test', DESC)

        # === Test: equivalent tokens give equal keys
        self.assertEqual(parse_sort('test ASC'), parse_sort('test 1'))
        self.assertEqual(parse_sort('test asc'), parse_sort('test 1'))
        self.assertEqual(parse_sort('test desc'), parse_sort('test 0'))
        self.assertEqual(hash(parse_sort('test asc')), hash(parse_sort('test ASC')))

        # === Test: whitespace, nested fields
        test('  a.b   DESC ', 'a.b', DESC)
        self.assertTrue(parse_sort('a 0').is_desc)
        self.assertFalse(parse_sort('a 1').is_desc)
        self.assertEqual(str(parse_sort('a 0')), 'a DESC')

    def test_parse_sort_errors(self):
        """ Test: malformed sort keys """
        # Invalid direction
        for expr, direction in (('test UP', 'UP'), ('test -1', '-1'), ('test 2', '2'), ('test ascending', 'ascending')):
            with self.assertRaises(InvalidSortDirectionError, msg=expr) as e:
                parse_sort(expr)
            self.assertEqual(e.exception.direction, direction)

        # Wrong number of tokens
        for expr in ('test', 'test ASC DESC', '', 'a b c'):
            with self.assertRaises(InvalidExpressionError, msg=expr) as e:
                parse_sort(expr)
            self.assertEqual(e.exception.expression, expr)

        # Invalid field
        with self.assertRaises(InvalidFieldError):
            parse_sort('a-b ASC')

    def test_expressions_list(self):
        """ Test: single expressions are wrapped, blank ones are dropped """
        self.assertEqual(expressions_list(None), [])
        self.assertEqual(expressions_list(''), [])
        self.assertEqual(expressions_list('a ASC'), ['a ASC'])
        self.assertEqual(expressions_list(['a ASC', '', '  ', 'b DESC']), ['a ASC', 'b DESC'])
        self.assertEqual(expressions_list(('a ASC',)), ['a ASC'])
        self.assertEqual(expressions_list([]), [])

        # A single blank expression is not dropped: it's left for the parser to reject
        self.assertEqual(expressions_list('   '), ['   '])
        self.assertEqual(expressions_list(['   ']), [])

    def test_collection_names(self):
        """ Test: collection names """
        for name in ('users', 'Users_2', '_tmp', 'my-collection'):
            self.assertEqual(validate_collection_name(name), name)

        for name in ('', '2users', 'a.b', 'a b', 'a;drop', None, 'x' * 300):
            with self.assertRaises(InvalidQueryError, msg=name):
                validate_collection_name(name)
