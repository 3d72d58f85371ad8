""" Validation of records against a schema

A schema is a mapping of field names to constraints:

```python
schema = {
    'name': ('string', ...),     # required
    'age': 'integer',            # optional
    'tags': List[str],           # any type pydantic understands
    'score': (float, 0.0),       # optional, with a default
}
```

A constraint is either:

* a category name: 'string', 'number', 'integer', 'boolean', 'object', 'array', 'any'
* a Python type, or a typing construct
* a `(constraint, default)` tuple, pydantic style. The `...` default makes the field required.

Fields are optional unless declared otherwise; unknown fields are rejected.
The reserved fields (`_key`, `_id`, `_rev`, `createdAt`, `updatedAt`) are always optional,
whatever the schema says about them.

Validated records only contain the fields that were provided, with values normalized by pydantic.
"""

from typing import Any, List, Mapping, Optional, Union

import pydantic
from pydantic import ConfigDict, Field, TypeAdapter, create_model

from .exc import ValidationError


#: Constraint categories
CATEGORIES = {
    'string': str,
    'number': Union[int, float],
    'integer': int,
    'boolean': bool,
    'object': dict,
    'array': list,
    'any': Any,
}

#: Fields managed by the store and the Model
RESERVED_FIELDS = {
    '_key': Optional[str],
    '_id': Optional[str],
    '_rev': Optional[str],
    'createdAt': Optional[Union[int, float]],
    'updatedAt': Optional[Union[int, float]],
}


def _constraint_type(constraint):
    if isinstance(constraint, str):
        try:
            return CATEGORIES[constraint]
        except KeyError:
            raise ValueError('Unknown constraint category: {!r}'.format(constraint))
    return constraint


class Schema:
    """ A compiled schema

        Field names of documents are not always valid Python identifiers (think `_key`),
        so every field gets a generated name, and the document field name becomes its alias.
    """

    def __init__(self, fields: Mapping):
        """ Compile a schema

        :param fields: {field name: constraint}
        :raises ValueError: unknown constraint category
        """
        # Augment with reserved fields; copy, so that the caller's schema is untouched
        fields = dict(fields)
        fields.update({name: (type_, None) for name, type_ in RESERVED_FIELDS.items()})
        self.fields = fields

        # Pydantic field definitions
        definitions = {}
        for i, (name, constraint) in enumerate(fields.items()):
            if isinstance(constraint, tuple):
                constraint, default = constraint
            else:
                default = None
            definitions['f{}'.format(i)] = (_constraint_type(constraint), Field(default, alias=name))

        self.model = create_model('Record', __config__=ConfigDict(extra='forbid'), **definitions)
        self._adapter = TypeAdapter(List[self.model])

    def validate(self, records: list) -> List[dict]:
        """ Validate a list of records

        :raises ValidationError: errors of all records, together
        """
        try:
            validated = self._adapter.validate_python(records)
        except pydantic.ValidationError as e:
            raise ValidationError([
                {'loc': err['loc'], 'msg': err['msg'], 'type': err['type']}
                for err in e.errors(include_url=False)
            ]) from e

        return [r.model_dump(by_alias=True, exclude_unset=True) for r in validated]

    def __repr__(self):
        return 'Schema({})'.format(', '.join(self.fields))


def validate(data: Union[Mapping, list], schema: Union[Schema, Mapping, None] = None) -> List[dict]:
    """ Validate one record, or a list of them

    A single record is always wrapped into a list.
    Without a schema, records are returned as they are.

    :param data: A record, or a list of records
    :param schema: A Schema, a mapping to compile one, or None
    :return: List of validated records
    :raises ValidationError: Some records are invalid
    """
    if not isinstance(data, list):
        data = [data]

    if schema is None:
        return data

    if not isinstance(schema, Schema):
        schema = Schema(schema)
    return schema.validate(data)
