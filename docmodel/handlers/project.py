"""
### Project Operation

Projection corresponds to the `RETURN` part of a query: it selects the fields to be returned.

```python
await model.find({
    'project': ['name', 'age'],
})
```

A string with whitespace-separated field names is accepted as well: `'name age'`.

The `_key` field is always returned, so that every record can be referred to.
Without a projection, whole records are returned.
"""

from .base import QueryHandlerBase, validate_field_name
from ..exc import InvalidQueryError, InvalidFieldError


class DocProject(QueryHandlerBase):
    """ Projection

        * None: whole records
        * 'a b c': a string of field names
        * ['a', 'b', 'c']: a list of field names
    """

    query_object_section_name = 'project'

    #: Fields included into every projection
    force_include = ('_key',)

    def __init__(self, collection, default_projection=None):
        """ Init a projection

        :param collection: Collection name
        :param default_projection: The projection to use when the user has provided none
        :type default_projection: str | list[str] | None
        """
        super(DocProject, self).__init__(collection)

        # Config
        self.default_projection = self._input(default_projection)

        # On input
        #: tuple[str] | None
        self.projection = None

    def _input(self, spec):
        """ Parse a projection

            :rtype: tuple[str] | None
        """
        # Empty
        if not spec:
            return None

        # String syntax
        if isinstance(spec, str):
            spec = spec.split()

        if not isinstance(spec, (list, tuple)):
            raise InvalidQueryError('{name} must be either a list, or a string; {type} provided.'
                                    .format(name=self.query_object_section_name, type=type(spec)))

        # Validate: top-level fields only
        for field in spec:
            validate_field_name(field, self.query_object_section_name)
            if '.' in field:
                raise InvalidFieldError(field, self.query_object_section_name)

        # Forced fields go first, the rest keeps its order
        fields = list(self.force_include)
        fields.extend(f for f in spec if f not in fields)
        return tuple(fields)

    def input(self, projection):
        super(DocProject, self).input(projection)
        self.projection = self._input(projection) or self.default_projection
        return self

    def alter_query(self, query):
        return query._replace(projection=self.projection)

    def get_final_input_value(self):
        return list(self.projection) if self.projection else None
