import pytest

from ssaforge.expressions import (
    AssignExpression,
    BinaryExpression,
    Expression,
    ForExpression,
    IfExpression,
    NumberExpression,
    VariableExpression,
    Visitor,
)


class Recorder(Visitor):
    def __init__(self):
        self.calls = []

    def visit_number(self, exp):
        self.calls.append(("number", exp))

    def visit_variable(self, exp):
        self.calls.append(("variable", exp))

    def visit_assign(self, exp):
        self.calls.append(("assign", exp))

    def visit_if(self, exp):
        self.calls.append(("if", exp))

    def visit_for(self, exp):
        self.calls.append(("for", exp))

    def visit_binary(self, exp):
        self.calls.append(("binary", exp))

    def visit_branch_statement(self, stmt):
        self.calls.append(("branch", stmt))

    def visit_assign_statement(self, stmt):
        self.calls.append(("assign_stmt", stmt))


def test_number_string():
    assert str(NumberExpression(5)) == "5"


def test_variable_string_tracks_ssa_index():
    var = VariableExpression("x")
    assert str(var) == "x_0"
    var.set_ssa_index(7)
    assert var.ssa_index == 7
    assert str(var).endswith("_7")
    assert str(var).startswith("x")


def test_binary_string_joins_operands():
    exp = BinaryExpression("+", VariableExpression("x"), NumberExpression(3))
    assert str(exp) == f"{exp.lhs} + {exp.rhs}"
    assert str(exp).split(" ")[1] == "+"


def test_assign_has_empty_string_and_var_name():
    exp = AssignExpression(VariableExpression("y"), NumberExpression(1))
    assert str(exp) == ""
    assert exp.var_name() == "y"


def test_for_expression_builds_index_variable():
    loop = ForExpression("i", NumberExpression(0), NumberExpression(3), None, NumberExpression(1))
    assert loop.index.name == "i"
    assert loop.index.ssa_index == 0
    assert str(loop) == ""


@pytest.mark.parametrize(
    "expression, kind",
    [
        (NumberExpression(1), "number"),
        (VariableExpression("a"), "variable"),
        (AssignExpression(VariableExpression("a"), NumberExpression(2)), "assign"),
        (IfExpression(NumberExpression(1), NumberExpression(2), NumberExpression(3)), "if"),
        (ForExpression("i", NumberExpression(0), NumberExpression(1), None, NumberExpression(0)), "for"),
        (BinaryExpression("-", NumberExpression(1), NumberExpression(2)), "binary"),
    ],
)
def test_accept_dispatches(expression, kind):
    recorder = Recorder()
    expression.accept(recorder)
    assert recorder.calls == [(kind, expression)]


def test_variables_compare_by_identity():
    a = VariableExpression("x")
    b = VariableExpression("x")
    assert a != b
    assert len({a, b}) == 2


def test_abstract_classes_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Visitor()
    with pytest.raises(TypeError):
        Expression()