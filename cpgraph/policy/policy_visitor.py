"""Depth-first walk over routing policy statements and expressions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from ..core.datamodel import (
    BooleanExpr,
    CallExpr,
    CallStatement,
    Conjunction,
    Device,
    Disjunction,
    If,
    Not,
    Statement,
)

logger = logging.getLogger(__name__)

StatementCallback = Callable[[Statement], None]
ExprCallback = Callable[[BooleanExpr], None]


class PolicyVisitor:
    """Visit every statement and boolean expression reachable from a policy.

    Calls to other policies (``CallStatement`` / ``CallExpr``) are followed
    through the device's ``routing_policies``; each called policy is
    visited at most once per walk.

    Args:
        device: Device whose policies resolve call targets.

    """

    def __init__(self, device: Device) -> None:
        """Initialize the visitor for ``device``."""
        self._device = device
        self._seen: set[str] = set()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def visit(
        self,
        statements: Iterable[Statement],
        on_statement: StatementCallback,
        on_expr: ExprCallback,
    ) -> None:
        """Walk ``statements``, invoking the callbacks on each node."""
        for stmt in statements:
            on_statement(stmt)
            if isinstance(stmt, If):
                self._visit_expr(stmt.guard, on_statement, on_expr)
                self.visit(stmt.true_statements, on_statement, on_expr)
                self.visit(stmt.false_statements, on_statement, on_expr)
            elif isinstance(stmt, CallStatement):
                self._visit_call(stmt.policy, on_statement, on_expr)

    def _visit_expr(
        self,
        expr: BooleanExpr,
        on_statement: StatementCallback,
        on_expr: ExprCallback,
    ) -> None:
        on_expr(expr)
        if isinstance(expr, Conjunction):
            for sub in expr.conjuncts:
                self._visit_expr(sub, on_statement, on_expr)
        elif isinstance(expr, Disjunction):
            for sub in expr.disjuncts:
                self._visit_expr(sub, on_statement, on_expr)
        elif isinstance(expr, Not):
            self._visit_expr(expr.expr, on_statement, on_expr)
        elif isinstance(expr, CallExpr):
            self._visit_call(expr.policy, on_statement, on_expr)

    def _visit_call(
        self,
        name: str,
        on_statement: StatementCallback,
        on_expr: ExprCallback,
    ) -> None:
        if name in self._seen:
            return
        self._seen.add(name)
        policy = self._device.routing_policies.get(name)
        if policy is None:
            self._logger.warning("%s: called policy '%s' is not defined", self._device.name, name)
            return
        self.visit(policy.statements, on_statement, on_expr)
