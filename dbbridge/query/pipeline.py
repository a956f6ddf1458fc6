"""
Lazy query pipelines

A Pipeline accumulates declarative operations against one table of one
handle and compiles them into a single SELECT when asked. Building a
pipeline performs no I/O; ``collect()`` compiles and executes.

    mtcars = table(handle, "mtcars")
    by_cyl = (
        mtcars
        .filter("hp > 100")
        .group_by("cyl")
        .summarize(mpg="AVG(mpg)", n="COUNT(*)")
        .filter("n > 2")
        .arrange("mpg", direction="desc")
    )
    by_cyl.to_sql()
    # SELECT "cyl", AVG("mpg") AS "mpg", COUNT(*) AS "n" FROM "mtcars"
    #   WHERE "hp" > 100 GROUP BY "cyl" HAVING COUNT(*) > 2 ORDER BY "mpg" DESC
    result = by_cyl.collect()

Clause order within one SELECT level:
    source -> WHERE -> GROUP BY -> aggregates -> HAVING -> ORDER BY -> LIMIT

Operations that cannot be folded into the current level wrap it as a
subquery (q01, q02, ...) and continue on the outer level.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlglot import expressions as exp

from dbbridge.query.builder import SQLBuilder

logger = logging.getLogger(__name__)

DIRECTIONS = ("asc", "desc")


@dataclass
class _Level:
    """One SELECT under construction."""
    source: exp.Expression
    where: List[exp.Expression] = field(default_factory=list)
    group_keys: List[str] = field(default_factory=list)
    columns: Optional[List[str]] = None
    aggregates: Optional[Dict[str, exp.Expression]] = None
    having: List[exp.Expression] = field(default_factory=list)
    order: List[Tuple[str, bool]] = field(default_factory=list)
    limit: Optional[int] = None


class Pipeline:
    """
    Immutable, lazily compiled sequence of query operations.

    Every chainable method returns a new Pipeline; earlier pipelines are
    never modified and can be reused as common prefixes.
    """

    def __init__(self, handle, table_name: str, ops: Tuple[Tuple[str, Any], ...] = ()):
        if not table_name or not isinstance(table_name, str):
            raise ValueError("table name must be a non-empty string")
        self._handle = handle
        self._table = table_name
        self._ops = ops

    def _extend(self, op: str, arg: Any) -> "Pipeline":
        return Pipeline(self._handle, self._table, self._ops + ((op, arg),))

    @property
    def handle(self):
        return self._handle

    @property
    def table_name(self) -> str:
        return self._table

    @property
    def operations(self) -> Tuple[Tuple[str, Any], ...]:
        return self._ops

    # =========================================================================
    # Operations
    # =========================================================================

    def filter(self, predicate: str) -> "Pipeline":
        """Keep rows matching a SQL predicate, e.g. ``"cyl = 4"``."""
        if not isinstance(predicate, str) or not predicate.strip():
            raise ValueError("predicate must be a non-empty SQL expression")
        return self._extend("filter", predicate)

    def group_by(self, *keys: str) -> "Pipeline":
        """Group by the given columns. Replaces any earlier grouping."""
        _check_names(keys, "group_by")
        return self._extend("group_by", tuple(keys))

    def summarize(self, exprs: Optional[Mapping[str, str]] = None, **named: str) -> "Pipeline":
        """
        Aggregate each group to one row.

        Args:
            exprs: Mapping of output name -> SQL aggregate expression
            **named: Same, as keyword arguments (``mpg="AVG(mpg)"``)
        """
        aggregates = dict(exprs or {})
        aggregates.update(named)
        if not aggregates:
            raise ValueError("summarize needs at least one expression")
        for alias, text in aggregates.items():
            if not isinstance(text, str) or not text.strip():
                raise ValueError(f"aggregate {alias!r} must be a non-empty SQL expression")
        return self._extend("summarize", tuple(aggregates.items()))

    summarise = summarize

    def arrange(self, *keys, direction: str = "asc") -> "Pipeline":
        """
        Order rows. Replaces any earlier ordering.

        Keys are column names sorted in ``direction``, or ``(column,
        direction)`` pairs to mix directions.
        """
        if not keys:
            raise ValueError("arrange needs at least one key")
        order = []
        for key in keys:
            name, key_direction = key if isinstance(key, tuple) else (key, direction)
            key_direction = str(key_direction).lower()
            if key_direction not in DIRECTIONS:
                raise ValueError(f"direction must be 'asc' or 'desc', got {key_direction!r}")
            _check_names((name,), "arrange")
            order.append((name, key_direction == "desc"))
        return self._extend("arrange", tuple(order))

    def select(self, *columns: str) -> "Pipeline":
        """Keep only the given columns."""
        _check_names(columns, "select")
        return self._extend("select", tuple(columns))

    def head(self, n: int = 6) -> "Pipeline":
        """Keep the first ``n`` rows."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise ValueError(f"head needs a non-negative integer, got {n!r}")
        return self._extend("head", n)

    # =========================================================================
    # Realization
    # =========================================================================

    def to_sql(self) -> str:
        """Compile to SQL text without executing. Deterministic."""
        builder = SQLBuilder(self._handle.dialect)
        return builder.render(self._compile(builder))

    def collect(self):
        """Compile and execute; returns a fully materialized ResultSet."""
        sql = self.to_sql()
        logger.debug(f"Collecting pipeline over {self._table}: {sql}")
        return self._handle.execute(sql)

    def _compile(self, builder: SQLBuilder) -> exp.Select:
        level = _Level(source=builder.table(self._table))
        depth = 0

        def wrap(current: _Level) -> _Level:
            nonlocal depth
            depth += 1
            if current.order and current.limit is None:
                logger.warning(f"Dropping ORDER BY inside subquery over {self._table}")
                current.order = []
            inner = _render(builder, current)
            # summarize peels off the innermost grouping level
            keys = current.group_keys[:-1] if current.aggregates is not None else current.group_keys
            return _Level(source=inner.subquery(f"q{depth:02d}"), group_keys=list(keys))

        for op, arg in self._ops:
            if op == "filter":
                if level.limit is not None:
                    level = wrap(level)
                predicate = builder.expression(arg)
                if level.aggregates is None:
                    level.where.append(predicate)
                else:
                    level.having.append(_inline_aliases(predicate, level.aggregates))

            elif op == "group_by":
                if level.aggregates is not None or level.limit is not None:
                    level = wrap(level)
                level.group_keys = list(arg)

            elif op == "summarize":
                if level.aggregates is not None or level.limit is not None:
                    level = wrap(level)
                if level.order:
                    logger.warning(f"Dropping arrange() before summarize() over {self._table}")
                    level.order = []
                level.columns = None
                level.aggregates = {alias: builder.expression(text) for alias, text in arg}

            elif op == "arrange":
                if level.limit is not None:
                    level = wrap(level)
                level.order = list(arg)

            elif op == "select":
                if level.aggregates is not None or level.limit is not None:
                    level = wrap(level)
                level.columns = list(arg)

            elif op == "head":
                level.limit = arg if level.limit is None else min(level.limit, arg)

            else:
                raise ValueError(f"Unknown pipeline operation: {op}")

        return _render(builder, level)

    def __repr__(self):
        steps = " -> ".join(op for op, _ in self._ops) or "table"
        return f"<Pipeline {self._table}: {steps}>"


def table(handle, name: str) -> Pipeline:
    """Start a pipeline over ``name`` on ``handle``. No I/O is performed."""
    return handle.table(name)


def _check_names(names, op: str) -> None:
    if not names:
        raise ValueError(f"{op} needs at least one column")
    for name in names:
        if not isinstance(name, str) or not name:
            raise ValueError(f"{op} columns must be non-empty strings, got {name!r}")


def _inline_aliases(predicate: exp.Expression, aggregates: Dict[str, exp.Expression]) -> exp.Expression:
    """Replace references to aggregate aliases with the aggregate itself."""
    def substitute(node):
        if isinstance(node, exp.Column) and not node.table and node.name in aggregates:
            return aggregates[node.name].copy()
        return node

    return predicate.transform(substitute)


def _render(builder: SQLBuilder, level: _Level) -> exp.Select:
    if level.aggregates is not None:
        projections = [builder.column(k) for k in level.group_keys]
        projections += [
            exp.alias_(expression.copy(), alias, quoted=True)
            for alias, expression in level.aggregates.items()
        ]
    elif level.columns is not None:
        projections = [builder.column(c) for c in level.columns]
    else:
        projections = [exp.Star()]

    query = exp.select(*projections).from_(level.source)

    for condition in level.where:
        query = query.where(condition)

    if level.aggregates is not None and level.group_keys:
        query = query.group_by(*[builder.column(k) for k in level.group_keys])

    for condition in level.having:
        query = query.having(condition)

    if level.order:
        # parsed so the dialect's default NULL ordering is kept
        keys = [
            f"{builder.render(builder.column(name))} {'DESC' if desc else 'ASC'}"
            for name, desc in level.order
        ]
        query = query.order_by(*keys, dialect=builder.target_dialect)

    if level.limit is not None:
        query = query.limit(level.limit)

    return query
