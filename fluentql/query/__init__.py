"""fluentql query layer: clause model, bindings and the fluent builder."""
from fluentql.query.bindings import BINDING_TYPES, BindingStore
from fluentql.query.clauses import (
    Aggregate,
    BasicWhere,
    BetweenWhere,
    Boolean,
    ColumnWhere,
    DatePart,
    DateWhere,
    ExistsWhere,
    InSubWhere,
    InWhere,
    LockMode,
    NestedWhere,
    NullWhere,
    Order,
    QueryState,
    RawOrder,
    RawWhere,
    SubWhere,
    UnionClause,
)

__all__ = [
    "BINDING_TYPES",
    "BindingStore",
    "Aggregate",
    "BasicWhere",
    "BetweenWhere",
    "Boolean",
    "ColumnWhere",
    "DatePart",
    "DateWhere",
    "ExistsWhere",
    "InSubWhere",
    "InWhere",
    "LockMode",
    "NestedWhere",
    "NullWhere",
    "Order",
    "QueryState",
    "RawOrder",
    "RawWhere",
    "SubWhere",
    "UnionClause",
]
