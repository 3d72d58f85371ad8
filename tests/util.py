from sqlalchemy.dialects import sqlite
from sqlalchemy.pool import StaticPool

from docmodel import SqlStore


def stmt2sql(stmt, *, literal: bool = False) -> str:
    """ Convert an SqlAlchemy statement into a string, SQLite dialect """
    return str(stmt.compile(
        dialect=sqlite.dialect(),
        compile_kwargs={
            'literal_binds': literal,
        }
    ))


def get_store_for_tests() -> SqlStore:
    """ An in-memory store

        StaticPool: every connection is the same one; otherwise, every connection gets its own empty database
    """
    return SqlStore('sqlite+aiosqlite://', poolclass=StaticPool)


class TestQueryStringsMixin:
    """ unittest mixin that will help testing query strings """

    def assertQuery(self, qs: str, *expected_lines):
        """ Compare a query piece by piece

            Every expected line has to be found in the query; whitespace around it is ignored.
        """
        try:
            for line in '\n'.join(expected_lines).splitlines():
                self.assertIn(line.strip(), qs)
        except:
            print(qs)
            raise
