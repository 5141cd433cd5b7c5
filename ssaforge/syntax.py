"""Syntax tree of a small C-like language and its lowering to the typed IR."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .ir import BasicBlock, CodegenData, Constant, Function, Value

_ARITHMETIC = frozenset({"+", "-", "*", "/"})
_COMPARISONS = frozenset({"<", ">"})


class CodegenError(RuntimeError):
    """Raised when a syntax tree cannot be lowered to IR."""


def _current_function(data: CodegenData) -> Function:
    block = data.builder.insert_block
    if block is None or block.function is None:
        raise CodegenError("no function to emit blocks into")
    return block.function


class ExprAST(ABC):
    """Base of all expressions."""

    @abstractmethod
    def codegen(self, data: CodegenData) -> Value:
        """Emit the expression and return the value it computes."""


@dataclass
class NumberExpr(ExprAST):
    """A 32-bit integer literal."""

    val: int

    def codegen(self, data: CodegenData) -> Value:
        return Constant(self.val)


@dataclass
class VariableExpr(ExprAST):
    """A read of a declared variable."""

    name: str

    def codegen(self, data: CodegenData) -> Value:
        slot = data.named_vars.get(self.name)
        if slot is None:
            raise CodegenError(f"Unknown variable name: {self.name}")
        return data.builder.create_load(slot, self.name)


@dataclass
class BinaryExpr(ExprAST):
    """Arithmetic (``+ - * /``) or comparison (``< >``) of two expressions."""

    op: str
    lhs: ExprAST
    rhs: ExprAST

    def codegen(self, data: CodegenData) -> Value:
        if self.op in _ARITHMETIC:
            lhs = self.lhs.codegen(data)
            rhs = self.rhs.codegen(data)
            return data.builder.create_binary(self.op, lhs, rhs)
        if self.op in _COMPARISONS:
            lhs = self.lhs.codegen(data)
            rhs = self.rhs.codegen(data)
            return data.builder.create_icmp(self.op, lhs, rhs)
        raise CodegenError("unknown bin operation")


class StatementAST(ABC):
    """Base of all statements."""

    @abstractmethod
    def codegen(self, data: CodegenData) -> None:
        """Emit the statement at the builder's insert point."""


@dataclass
class DeclareStatement(StatementAST):
    """``type var;`` — reserves a stack slot for an ``int`` variable."""

    type: str
    var: str

    def codegen(self, data: CodegenData) -> None:
        if self.type == "int":
            data.named_vars[self.var] = data.builder.create_alloca(self.var)


@dataclass
class ReAssignStatement(StatementAST):
    """``var = value;`` for a declared variable."""

    var: str
    value: ExprAST

    def codegen(self, data: CodegenData) -> None:
        slot = data.named_vars.get(self.var)
        if slot is None:
            raise CodegenError(f"Unknown variable: {self.var}")
        data.builder.create_store(self.value.codegen(data), slot)


@dataclass
class IfStatement(StatementAST):
    """``if (cond) { ... } else { ... }``."""

    cond: ExprAST
    then_sts: list[StatementAST] = field(default_factory=list)
    else_sts: list[StatementAST] = field(default_factory=list)

    def codegen(self, data: CodegenData) -> None:
        cmp = self.cond.codegen(data)
        func = _current_function(data)
        builder = data.builder

        then_block = BasicBlock.create("then", func)
        else_block = BasicBlock.create("else", func)
        merge_block = BasicBlock.create("merge", func)

        builder.create_cond_br(cmp, then_block, else_block)

        builder.set_insert_point(then_block)
        for statement in self.then_sts:
            statement.codegen(data)
        builder.create_br(merge_block)

        builder.set_insert_point(else_block)
        for statement in self.else_sts:
            statement.codegen(data)
        builder.create_br(merge_block)

        builder.set_insert_point(merge_block)


@dataclass
class WhileStatement(StatementAST):
    """``while (cond) { ... }``."""

    cond: ExprAST
    while_sts: list[StatementAST] = field(default_factory=list)

    def codegen(self, data: CodegenData) -> None:
        func = _current_function(data)
        builder = data.builder

        header = BasicBlock.create("whileHeader", func)
        body = BasicBlock.create("whileBody", func)
        end = BasicBlock.create("whileEnd", func)

        builder.create_br(header)

        builder.set_insert_point(header)
        condition = self.cond.codegen(data)
        builder.create_cond_br(condition, body, end)

        builder.set_insert_point(body)
        for statement in self.while_sts:
            statement.codegen(data)
        builder.create_br(header)

        builder.set_insert_point(end)


@dataclass
class ReturnStatement(StatementAST):
    """``return expr;``."""

    expr: ExprAST

    def codegen(self, data: CodegenData) -> None:
        data.builder.create_ret(self.expr.codegen(data))


@dataclass
class FunctionAST:
    """A function definition with no parameters."""

    type: str
    name: str
    statements: list[StatementAST] = field(default_factory=list)

    def codegen(self, data: CodegenData) -> Function:
        """Emit the function into ``data.module`` and return it."""
        if self.type != "int":
            raise CodegenError("unknown type of function")
        func = Function.create(self.name, data.module)
        entry = BasicBlock.create("entry", func)
        data.builder.set_insert_point(entry)
        for statement in self.statements:
            statement.codegen(data)
        return func