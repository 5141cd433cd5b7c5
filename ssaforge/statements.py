"""Statements that live inside basic blocks of the control flow graph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .expressions import Expression, VariableExpression, Visitor

if TYPE_CHECKING:
    from .cfg import BasicBlock


class StatementType(Enum):
    ASSIGN = 0
    BRANCH = 1
    PHI = 2


class Statement(ABC):
    """Base of all IR statements."""

    type: StatementType

    @abstractmethod
    def dump(self) -> str:
        """Render the statement as text."""

    @abstractmethod
    def dump_dot(self) -> str:
        """Render the statement as Graphviz edges."""

    @abstractmethod
    def accept(self, visitor: Visitor) -> None:
        """Dispatch to the matching method of ``visitor``."""


class AssignStatement(Statement):
    """``var = rhs``."""

    type = StatementType.ASSIGN

    def __init__(self, var: VariableExpression, rhs: Expression) -> None:
        self.var = var
        self.rhs = rhs

    def dump(self) -> str:
        return f"{self.var} = {self.rhs}"

    def dump_dot(self) -> str:
        return f'"{self.var}" -> "{self.rhs}"'

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_assign_statement(self)


class BranchStatement(Statement):
    """A jump to one block, or a conditional jump to one of two blocks."""

    type = StatementType.BRANCH

    def __init__(
        self,
        condition: Optional[Expression],
        first_block: "BasicBlock",
        second_block: Optional["BasicBlock"],
        is_conditional: bool,
    ) -> None:
        self.condition = condition
        self.first_block = first_block
        self.second_block = second_block
        self.is_conditional = is_conditional

    @classmethod
    def conditional(
        cls, condition: Expression, true_block: "BasicBlock", false_block: "BasicBlock"
    ) -> "BranchStatement":
        return cls(condition, true_block, false_block, True)

    @classmethod
    def unconditional(cls, target: "BasicBlock") -> "BranchStatement":
        return cls(None, target, None, False)

    def dump(self) -> str:
        if self.is_conditional:
            return (
                f"branch on: {self.condition} to: {self.first_block} "
                f"or: {self.second_block}"
            )
        return str(self.first_block)

    def dump_dot(self) -> str:
        if self.is_conditional:
            return (
                f'"{self.condition}" -> "{self.first_block}"\n'
                f'"{self.condition}" -> "{self.second_block}"\n'
            )
        return f"//branch to: {self.first_block}"

    def accept(self, visitor: Visitor) -> None:
        visitor.visit_branch_statement(self)


class PhiNodeStatement(Statement):
    """A phi node choosing a variable version by predecessor block."""

    type = StatementType.PHI

    def __init__(
        self,
        var: VariableExpression,
        block_to_var: dict["BasicBlock", VariableExpression],
    ) -> None:
        self.var = var
        self.block_to_var = dict(block_to_var)

    def dump(self) -> str:
        args = "".join(f"{var} {block}; " for block, var in self.block_to_var.items())
        return f"{self.var} = [{args}]"

    def dump_dot(self) -> str:
        parts = []
        previous = str(self.var)
        for block, var in self.block_to_var.items():
            current = f"{var} {block}"
            parts.append(f'"{previous}" -> {current}; ')
            previous = current
        return "".join(parts)

    def accept(self, visitor: Visitor) -> None:
        """Phi nodes are not visited."""
        return None