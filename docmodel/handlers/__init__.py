"""

The Query Object is a dict that lets you sort, filter, paginate, and count the records of a collection.
It is what `Model.find()` and friends accept:

```python
await model.find({
    'filter': ['age >= 18', 'sex == female'],
    'sort': ['age DESC', 'name ASC'],
    'project': ['name', 'age'],
    'skip': 10,
    'limit': 100,
})
```

Query Object Syntax
-------------------

It is an object with the following properties:

* `project`: [Project Operation](#project-operation) selects the fields to be returned
* `sort`: [Sort Operation](#sort-operation) determines the sorting of the results
* `filter`: [Filter Operation](#filter-operation) filters the results, using your criteria
* `skip`, `limit`: [Rows slicing](#slice-operation): paginates the results
* `count`: [Counting rows](#count-operation) counts the number of records without producing results

Every section is optional. Filters and sort keys are small strings that are parsed once, when the query is built;
the operands never make it into the query text: they are always passed as bound parameters.

This is not a general query language: there are no OR-conditions, no nested expressions, and no joins.
"""

from .base import QueryHandlerBase, validate_field_name
from .project import DocProject
from .sort import DocSort, SortKey, parse_sort, ASC, DESC
from .filter import DocFilter, FilterExpression, parse_filter, OPERATORS
from .limit import DocLimit
from .count import DocCount
