"""Expression tree and the visitor interface over it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .statements import AssignStatement, BranchStatement


class Visitor(ABC):
    """Double-dispatch interface over expressions and IR statements."""

    @abstractmethod
    def visit_number(self, exp: "NumberExpression") -> None: ...

    @abstractmethod
    def visit_variable(self, exp: "VariableExpression") -> None: ...

    @abstractmethod
    def visit_assign(self, exp: "AssignExpression") -> None: ...

    @abstractmethod
    def visit_if(self, exp: "IfExpression") -> None: ...

    @abstractmethod
    def visit_for(self, exp: "ForExpression") -> None: ...

    @abstractmethod
    def visit_binary(self, exp: "BinaryExpression") -> None: ...

    @abstractmethod
    def visit_branch_statement(self, stmt: "BranchStatement") -> None: ...

    @abstractmethod
    def visit_assign_statement(self, stmt: "AssignStatement") -> None: ...


class Expression(ABC):
    """Base of all expression nodes."""

    @abstractmethod
    def accept(self, visitor: Visitor) -> None:
        """Dispatch to the matching method of ``visitor``."""

    def __str__(self) -> str:
        return ""


@dataclass(eq=False)
class NumberExpression(Expression):
    """An integer literal."""

    value: int

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_number(self)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(eq=False)
class VariableExpression(Expression):
    """A reference to a named variable, carrying its SSA version."""

    name: str
    ssa_index: int = 0

    def set_ssa_index(self, index: int) -> None:
        self.ssa_index = index

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_variable(self)

    def __str__(self) -> str:
        return f"{self.name}_{self.ssa_index}"


@dataclass(eq=False)
class AssignExpression(Expression):
    """Assignment of an expression to a variable."""

    var_exp: VariableExpression
    expr: Expression

    def var_name(self) -> str:
        return self.var_exp.name

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_assign(self)


@dataclass(eq=False)
class IfExpression(Expression):
    """A two-armed conditional."""

    condition: Expression
    then_exp: Expression
    else_exp: Expression

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_if(self)


class ForExpression(Expression):
    """A counting loop over an index variable."""

    def __init__(
        self,
        index_name: str,
        start: Expression,
        end: Expression,
        step: Expression | None,
        body: Expression,
    ) -> None:
        self.index = VariableExpression(index_name)
        self.start = start
        self.end = end
        self.step = step
        self.body = body

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_for(self)

    def __repr__(self) -> str:
        return (
            f"ForExpression(index={self.index!r}, start={self.start!r}, "
            f"end={self.end!r}, step={self.step!r}, body={self.body!r})"
        )


@dataclass(eq=False)
class BinaryExpression(Expression):
    """A binary operation on two expressions."""

    op: str
    lhs: Expression
    rhs: Expression

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_binary(self)

    def __str__(self) -> str:
        return f"{self.lhs} {self.op} {self.rhs}"