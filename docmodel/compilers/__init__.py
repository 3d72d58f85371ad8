""" Compilers turn a store-agnostic QueryExpression into something a store can execute """

from .aql import compile_aql
from .sql import compile_select, compile_example, project_document
