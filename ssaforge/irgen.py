"""Control flow graph construction from expressions and conversion to SSA form."""

from __future__ import annotations

from typing import Optional

from .cfg import BasicBlock, ControlFlowGraph
from .expressions import (
    AssignExpression,
    BinaryExpression,
    Expression,
    ForExpression,
    IfExpression,
    NumberExpression,
    VariableExpression,
    Visitor,
)
from .statements import (
    AssignStatement,
    BranchStatement,
    PhiNodeStatement,
    Statement,
    StatementType,
)


class VarSearchVisitor(Visitor):
    """Collects the variable references a statement reads."""

    def __init__(self) -> None:
        self._vars: set[VariableExpression] = set()

    def vars_used_in(self, statement: Statement) -> set[VariableExpression]:
        """Return every variable reference read by ``statement``."""
        self._vars = set()
        statement.accept(self)
        return self._vars

    def visit_branch_statement(self, stmt: BranchStatement) -> None:
        if stmt.condition is not None:
            stmt.condition.accept(self)

    def visit_assign_statement(self, stmt: AssignStatement) -> None:
        stmt.rhs.accept(self)

    def visit_number(self, exp: NumberExpression) -> None:
        return None

    def visit_variable(self, exp: VariableExpression) -> None:
        self._vars.add(exp)

    def visit_assign(self, exp: AssignExpression) -> None:
        self._vars.add(exp.var_exp)
        exp.expr.accept(self)

    def visit_if(self, exp: IfExpression) -> None:
        exp.condition.accept(self)
        exp.then_exp.accept(self)
        exp.else_exp.accept(self)

    def visit_for(self, exp: ForExpression) -> None:
        self._vars.add(exp.index)
        exp.end.accept(self)
        exp.body.accept(self)
        exp.start.accept(self)

    def visit_binary(self, exp: BinaryExpression) -> None:
        exp.lhs.accept(self)
        exp.rhs.accept(self)


class _Renamer:
    """Assigns SSA versions to every occurrence of one variable."""

    def __init__(self, cfg: ControlFlowGraph) -> None:
        self._cfg = cfg
        self._searcher = VarSearchVisitor()
        self._counter = 0
        self._stack: list[int] = []

    def rename(self, var_name: str) -> None:
        self._counter = 0
        self._stack = []
        self._traverse(self._cfg.basic_blocks[0], var_name)

    def _top(self) -> int:
        return self._stack[-1] if self._stack else 0

    def _define(self, var: VariableExpression) -> None:
        var.set_ssa_index(self._counter)
        self._stack.append(self._counter)
        self._counter += 1

    def _traverse(self, block: BasicBlock, var_name: str) -> None:
        for stmt in block.statements:
            if stmt.type is not StatementType.PHI:
                for var in self._searcher.vars_used_in(stmt):
                    if var.name == var_name:
                        var.set_ssa_index(self._top())
            if stmt.type in (StatementType.ASSIGN, StatementType.PHI):
                if stmt.var.name == var_name:
                    self._define(stmt.var)

        for succ in block.succs:
            for stmt in succ.statements:
                if stmt.type is StatementType.PHI:
                    arg = stmt.block_to_var.get(block)
                    if arg is not None and arg.name == var_name:
                        arg.set_ssa_index(self._top())

        for child in block.dominated_blocks:
            self._traverse(child, var_name)

        for stmt in block.statements:
            if stmt.type is StatementType.ASSIGN and stmt.var.name == var_name:
                self._stack.pop()


class IRGenerator(Visitor):
    """Builds a control flow graph from expressions and converts it to SSA form."""

    def __init__(self) -> None:
        self.cfg = ControlFlowGraph()
        self._blocks_for_var: dict[str, set[BasicBlock]] = {}
        self._named_values: dict[str, int] = {}
        self._latest = 0
        self._committed = False
        self.entry_block = self._create_block("entry")
        self.current_block = self.entry_block

    def _create_block(self, label: str) -> BasicBlock:
        block = BasicBlock(len(self.cfg.basic_blocks), label)
        self.cfg.add_basic_block(block)
        return block

    def _create_br(self, target: BasicBlock) -> None:
        BasicBlock.add_link(self.current_block, target)
        self.current_block.add_statement(BranchStatement.unconditional(target))

    def _create_cond_br(
        self, condition: Expression, first: BasicBlock, second: BasicBlock
    ) -> None:
        BasicBlock.add_link(self.current_block, first)
        BasicBlock.add_link(self.current_block, second)
        self.current_block.add_statement(
            BranchStatement.conditional(condition, first, second)
        )

    def _note_assignment(self, name: str) -> None:
        self._blocks_for_var.setdefault(name, set()).add(self.current_block)

    def generate_ir(self, exp: Expression) -> int:
        """Emit statements for ``exp`` and return its computed value."""
        exp.accept(self)
        return self._latest

    def visit_number(self, exp: NumberExpression) -> None:
        self._latest = exp.value

    def visit_variable(self, exp: VariableExpression) -> None:
        if exp.name not in self._named_values:
            raise NameError(f"Unknown variable name: {exp.name}")
        self._latest = self._named_values[exp.name]

    def visit_assign(self, exp: AssignExpression) -> None:
        self._note_assignment(exp.var_exp.name)
        value = self.generate_ir(exp.expr)
        self._named_values[exp.var_name()] = value
        self.current_block.add_statement(AssignStatement(exp.var_exp, exp.expr))
        self._latest = value

    def visit_if(self, exp: IfExpression) -> None:
        then_block = self._create_block("then")
        else_block = self._create_block("else")
        merge_block = self._create_block("if_cont")

        self._create_cond_br(exp.condition, else_block, then_block)

        self.current_block = then_block
        self.generate_ir(exp.then_exp)
        self._create_br(merge_block)

        self.current_block = else_block
        self.generate_ir(exp.else_exp)
        self._create_br(merge_block)

        self.current_block = merge_block
        self._latest = 0

    def visit_for(self, exp: ForExpression) -> None:
        name = exp.index.name
        self._note_assignment(name)
        start_value = self.generate_ir(exp.start)
        self.current_block.add_statement(
            AssignStatement(VariableExpression(name), exp.start)
        )

        had_old = name in self._named_values
        old_value: Optional[int] = self._named_values.get(name)
        self._named_values[name] = start_value

        cond_block = self._create_block("loop_cond")
        self._create_br(cond_block)
        self.current_block = cond_block

        self._note_assignment(name)
        self.generate_ir(exp.end)
        body_block = self._create_block("loop_body")
        after_block = self._create_block("loop_cont")
        check = BinaryExpression("-", exp.end, VariableExpression(name))
        self._create_cond_br(check, body_block, after_block)

        self.current_block = body_block
        self.generate_ir(exp.body)

        self._note_assignment(name)
        step = BinaryExpression("+", VariableExpression(name), NumberExpression(1))
        self.current_block.add_statement(AssignStatement(exp.index, step))
        self._create_br(cond_block)

        self.current_block = after_block

        if had_old:
            self._named_values[name] = old_value
        else:
            del self._named_values[name]
        self._latest = 0

    def visit_binary(self, exp: BinaryExpression) -> None:
        lhs = self.generate_ir(exp.lhs)
        rhs = self.generate_ir(exp.rhs)
        if exp.op == "+":
            self._latest = lhs + rhs
        elif exp.op == "-":
            self._latest = lhs - rhs
        else:
            self._latest = 0
            raise ValueError(f"invalid binary operator: {exp.op!r}")

    def visit_branch_statement(self, stmt: BranchStatement) -> None:
        return None

    def visit_assign_statement(self, stmt: AssignStatement) -> None:
        return None

    def _insert_phi_nodes(self) -> None:
        for name in sorted(self._blocks_for_var):
            assigned = self._blocks_for_var[name]
            frontier = self.cfg.dominance_frontier_for(assigned)
            for block in sorted(frontier, key=lambda b: b.index):
                mapping = {pred: VariableExpression(name) for pred in block.preds}
                phi = PhiNodeStatement(VariableExpression(name), mapping)
                block.statements.insert(0, phi)

    def _build_ssa_form(self) -> None:
        renamer = _Renamer(self.cfg)
        for name in sorted(self._blocks_for_var):
            renamer.rename(name)

    def commit(self) -> None:
        """Finish the graph: dominators, phi nodes and SSA versions."""
        if self._committed:
            return
        self.cfg.commit_all_changes()
        self._insert_phi_nodes()
        self._build_ssa_form()
        self._committed = True

    def dump(self) -> str:
        """Text listing of every block with its edges, dominator and statements."""
        parts = []
        for block in self.cfg.basic_blocks:
            succs = "".join(f"{s} " for s in block.succs)
            preds = "".join(f"{p} " for p in block.preds)
            dominator = str(block.dominator) if block.dominator is not None else ""
            parts.append(
                f"\n{block}\n\t\tpreds: {preds}\n\t\tsuccs: {succs}"
                f"\n\t\tdominatedBy: {dominator}\n"
            )
            parts.extend(f"\t{stmt.dump()}\n" for stmt in block.statements)
        return "".join(parts)

    def dot(self) -> str:
        """Graphviz description of the control flow graph."""
        parts = ["digraph G {\n"]
        for block in self.cfg.basic_blocks:
            body = "".join(f"{stmt.dump()}\n" for stmt in block.statements)
            parts.append(f'\t"{block}" [label="{block}\n')
            parts.append(f'{body}"]\n')
            parts.extend(f'\t"{block}" -> "{succ}"\n' for succ in block.succs)
        parts.append("}\n")
        return "".join(parts)