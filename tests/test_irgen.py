import pytest

from ssaforge.expressions import (
    AssignExpression,
    BinaryExpression,
    ForExpression,
    IfExpression,
    NumberExpression,
    VariableExpression,
)
from ssaforge.irgen import IRGenerator, VarSearchVisitor
from ssaforge.statements import (
    AssignStatement,
    BranchStatement,
    PhiNodeStatement,
    StatementType,
)


def assign(name, exp):
    return AssignExpression(VariableExpression(name), exp)


def build_if_program():
    gen = IRGenerator()
    gen.generate_ir(assign("x", NumberExpression(1)))
    gen.generate_ir(
        IfExpression(
            NumberExpression(1),
            assign("x", NumberExpression(2)),
            assign("x", NumberExpression(3)),
        )
    )
    return gen


def build_for_program():
    gen = IRGenerator()
    loop = ForExpression(
        "i",
        NumberExpression(0),
        NumberExpression(3),
        None,
        assign("x", VariableExpression("i")),
    )
    gen.generate_ir(loop)
    return gen, loop


def block_by_label(gen, label):
    return next(b for b in gen.cfg.basic_blocks if b.label == label)


def test_assign_returns_value_and_records_statement():
    gen = IRGenerator()
    assert gen.generate_ir(assign("x", NumberExpression(5))) == 5
    gen.commit()
    assert [s.dump() for s in gen.entry_block.statements] == ["x_0 = 5"]


def test_binary_evaluation_round_trip():
    gen = IRGenerator()
    exp = BinaryExpression(
        "-",
        BinaryExpression("+", NumberExpression(10), NumberExpression(4)),
        NumberExpression(4),
    )
    assert gen.generate_ir(exp) == 10


def test_variable_value_after_assignment():
    gen = IRGenerator()
    gen.generate_ir(assign("y", NumberExpression(9)))
    assert gen.generate_ir(VariableExpression("y")) == 9


def test_unknown_variable_raises():
    gen = IRGenerator()
    with pytest.raises(NameError):
        gen.generate_ir(VariableExpression("missing"))


def test_invalid_operator_raises():
    gen = IRGenerator()
    with pytest.raises(ValueError):
        gen.generate_ir(BinaryExpression("*", NumberExpression(2), NumberExpression(3)))


def test_if_creates_blocks_and_edges():
    gen = build_if_program()
    labels = [b.label for b in gen.cfg.basic_blocks]
    assert labels == ["entry", "then", "else", "if_cont"]
    then_b, else_b, merge = gen.cfg.basic_blocks[1:]
    assert gen.entry_block.succs == [else_b, then_b]
    assert merge.preds == [then_b, else_b]
    branch = gen.entry_block.statements[-1]
    assert branch.is_conditional
    assert branch.first_block is else_b
    assert branch.second_block is then_b
    assert gen.current_block is merge


def test_if_returns_zero():
    gen = IRGenerator()
    result = gen.generate_ir(
        IfExpression(NumberExpression(1), NumberExpression(4), NumberExpression(6))
    )
    assert result == 0


def test_if_inserts_phi_in_merge_block():
    gen = build_if_program()
    gen.commit()
    merge = block_by_label(gen, "if_cont")
    phi = merge.statements[0]
    assert phi.type is StatementType.PHI
    assert phi.dump() == "x_3 = [x_1 bb #1 then; x_2 bb #2 else; ]"


def test_if_versions_are_distinct():
    gen = build_if_program()
    gen.commit()
    versions = [
        s.var.ssa_index
        for b in gen.cfg.basic_blocks
        for s in b.statements
        if s.type in (StatementType.ASSIGN, StatementType.PHI)
    ]
    assert len(versions) == len(set(versions))


def test_phi_arguments_match_definitions_in_predecessors():
    gen = build_if_program()
    gen.commit()
    merge = block_by_label(gen, "if_cont")
    phi = merge.statements[0]
    for pred, arg in phi.block_to_var.items():
        defining = [s for s in pred.statements if s.type is StatementType.ASSIGN]
        assert arg.ssa_index == defining[-1].var.ssa_index


def test_for_creates_loop_structure():
    gen, _ = build_for_program()
    labels = [b.label for b in gen.cfg.basic_blocks]
    assert labels == ["entry", "loop_cond", "loop_body", "loop_cont"]
    entry, cond, body, after = gen.cfg.basic_blocks
    assert entry.succs == [cond]
    assert cond.succs == [body, after]
    assert body.succs == [cond]
    assert gen.current_block is after


def test_for_restores_undefined_index():
    gen, _ = build_for_program()
    with pytest.raises(NameError):
        gen.generate_ir(VariableExpression("i"))


def test_for_restores_previous_index_value():
    gen = IRGenerator()
    gen.generate_ir(assign("i", NumberExpression(7)))
    gen.generate_ir(
        ForExpression(
            "i", NumberExpression(0), NumberExpression(2), None,
            assign("z", VariableExpression("i")),
        )
    )
    assert gen.generate_ir(VariableExpression("i")) == 7


def test_for_phi_nodes_in_condition_block():
    gen, loop = build_for_program()
    gen.commit()
    entry, cond, body, _ = gen.cfg.basic_blocks
    phis = [s for s in cond.statements if s.type is StatementType.PHI]
    assert {p.var.name for p in phis} == {"i", "x"}
    phi_i = next(p for p in phis if p.var.name == "i")
    entry_def = entry.statements[0]
    step_def = body.statements[-2]
    assert step_def.var is loop.index
    assert phi_i.block_to_var[entry].ssa_index == entry_def.var.ssa_index
    assert phi_i.block_to_var[body].ssa_index == step_def.var.ssa_index
    assert phi_i.var.ssa_index not in {
        entry_def.var.ssa_index,
        step_def.var.ssa_index,
    }


def test_for_body_uses_phi_version():
    gen, _ = build_for_program()
    gen.commit()
    _, cond, body, _ = gen.cfg.basic_blocks
    phi_i = next(
        s for s in cond.statements if s.type is StatementType.PHI and s.var.name == "i"
    )
    x_assign = body.statements[0]
    assert x_assign.rhs.ssa_index == phi_i.var.ssa_index
    branch = cond.statements[-1]
    assert branch.condition.rhs.ssa_index == phi_i.var.ssa_index


def test_commit_twice_does_not_duplicate_phis():
    gen = build_if_program()
    gen.commit()
    merge = block_by_label(gen, "if_cont")
    count = len(merge.statements)
    gen.commit()
    assert len(merge.statements) == count


def test_dump_lists_blocks_and_dominators():
    gen = build_if_program()
    gen.commit()
    text = gen.dump()
    for block in gen.cfg.basic_blocks:
        assert f"\n{block}\n" in text
    assert "dominatedBy: bb #0 entry\n" in text
    assert "\tx_1 = 2\n" in text


def test_dot_output_shape():
    gen = build_if_program()
    gen.commit()
    text = gen.dot()
    assert text.startswith("digraph G {\n")
    assert text.endswith("}\n")
    assert '\t"bb #0 entry" -> "bb #2 else"\n' in text
    edge_count = sum(len(b.succs) for b in gen.cfg.basic_blocks)
    assert text.count(" -> ") == edge_count


def test_var_search_assign_statement_reads_rhs_only():
    target = VariableExpression("a")
    used = VariableExpression("b")
    stmt = AssignStatement(target, BinaryExpression("+", used, NumberExpression(1)))
    assert VarSearchVisitor().vars_used_in(stmt) == {used}


def test_var_search_branch_statements():
    gen = IRGenerator()
    searcher = VarSearchVisitor()
    assert searcher.vars_used_in(BranchStatement.unconditional(gen.entry_block)) == set()
    cond_var = VariableExpression("c")
    stmt = BranchStatement.conditional(cond_var, gen.entry_block, gen.entry_block)
    assert searcher.vars_used_in(stmt) == {cond_var}


def test_var_search_ignores_phi_and_resets():
    searcher = VarSearchVisitor()
    used = VariableExpression("q")
    searcher.vars_used_in(AssignStatement(VariableExpression("p"), used))
    phi = PhiNodeStatement(VariableExpression("q"), {})
    assert searcher.vars_used_in(phi) == set()


def test_var_search_nested_assign_expression():
    inner_target = VariableExpression("m")
    inner_use = VariableExpression("n")
    stmt = AssignStatement(
        VariableExpression("k"), AssignExpression(inner_target, inner_use)
    )
    assert VarSearchVisitor().vars_used_in(stmt) == {inner_target, inner_use}