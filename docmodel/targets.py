""" Targets of Model.update() and Model.delete()

    The caller tells explicitly which documents an operation is about:

        await model.update(ByKey('123'), {'name': 'John'})
        await model.update(BulkRecords([{'_key': '123', 'age': 18}, {'_key': '456', 'age': 21}]))
        await model.update(ByExample({'name': 'John'}), {'age': 18})

        await model.delete(ByKeyList(['123', '456']))
"""

from typing import Iterable, Mapping


class Target:
    """ Base for update and delete targets """
    __slots__ = ()

    def __repr__(self):
        return '{}({!r})'.format(self.__class__.__name__, getattr(self, self.__slots__[0]))

    def __eq__(self, other):
        return type(self) is type(other) and all(getattr(self, a) == getattr(other, a) for a in self.__slots__)


class ByKey(Target):
    """ A single document, by its key """
    __slots__ = ('key',)

    def __init__(self, key: str):
        self.key = key


class ByKeyList(Target):
    """ Many documents, by their keys """
    __slots__ = ('keys',)

    def __init__(self, keys: Iterable[str]):
        self.keys = list(keys)


class ByExample(Target):
    """ Every document that matches a partial document """
    __slots__ = ('pattern',)

    def __init__(self, pattern: Mapping):
        self.pattern = dict(pattern)


class BulkRecords(Target):
    """ Many documents, each one identified by its own `_key` """
    __slots__ = ('records',)

    def __init__(self, records: Iterable[Mapping]):
        self.records = list(records)
