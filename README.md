# ssaforge

`ssaforge` is a small, dependency-free compiler toolkit for experimenting with
intermediate representations. It has two independent halves.

The first turns expression trees into a control flow graph in static single
assignment (SSA) form:

- `ssaforge.lexer`: `Lexer` reads a text stream (or a string) and yields
  `Token` values of kind `TokenType` (keywords `if then else for in`,
  identifiers, integers, `+`/`-`, `=`, and any other single character).
- `ssaforge.expressions`: the expression tree (`NumberExpression`,
  `VariableExpression`, `AssignExpression`, `IfExpression`, `ForExpression`,
  `BinaryExpression`) and the abstract `Visitor`.
- `ssaforge.statements`: statements placed in basic blocks
  (`AssignStatement`, `BranchStatement`, `PhiNodeStatement`), each with
  `dump()` and `dump_dot()`.
- `ssaforge.cfg`: `BasicBlock` and `ControlFlowGraph`, with `pre_order()`,
  `post_order()`, a dominator tree, `dominance_frontier(block)` and the
  iterated frontier `dominance_frontier_for(blocks)`.
- `ssaforge.irgen`: `IRGenerator` lowers expressions into blocks, and
  `commit()` inserts phi nodes and renames variables into SSA versions.
  `dump()` and `dot()` return the result as text or as Graphviz dot.

The second is a minimal typed IR and a statement-level syntax tree that
generates code into it:

- `ssaforge.ir`: `Module`, `Function`, `BasicBlock`, `Instruction`,
  `Constant`, `Builder` and `CodegenData`. Modules print as textual IR;
  `CodegenData.verify()` raises `ValueError` listing structural problems such
  as blocks without a terminator.
- `ssaforge.syntax`: `FunctionAST`, `DeclareStatement`, `ReAssignStatement`,
  `IfStatement`, `WhileStatement`, `ReturnStatement`, `NumberExpr`,
  `VariableExpr` and `BinaryExpr`, each with `codegen(data)`.

## Installation

```
pip install .
```

Python 3.10 or later is required.

## Building SSA from expressions

```python
from ssaforge.expressions import (
    AssignExpression, IfExpression, NumberExpression, VariableExpression,
)
from ssaforge.irgen import IRGenerator

gen = IRGenerator()
gen.generate_ir(AssignExpression(VariableExpression("x"), NumberExpression(1)))
gen.generate_ir(IfExpression(
    VariableExpression("x"),
    AssignExpression(VariableExpression("x"), NumberExpression(2)),
    AssignExpression(VariableExpression("x"), NumberExpression(3)),
))
gen.commit()

print(gen.dump())  # blocks, predecessors, successors, dominators and statements
print(gen.dot())   # the graph in Graphviz dot format
```

After `commit()` the `if_cont` block starts with a phi node joining the
versions of `x` from its two predecessors, and variables print with their SSA
index, such as `x_0` and `x_1`. `generate_ir` raises `NameError` when a
variable is read before it is assigned and `ValueError` for a binary operator
other than `+` or `-`.

Tokens can be read from a string or any text stream:

```python
from ssaforge.lexer import Lexer

for token in Lexer("x = 1 + y"):
    print(token)
```

Iteration stops before the end-of-input token; `Lexer.tokens()` returns all
remaining tokens including it.

## Generating IR from a syntax tree

```python
from ssaforge.ir import CodegenData
from ssaforge.syntax import (
    BinaryExpr, DeclareStatement, FunctionAST, NumberExpr,
    ReAssignStatement, ReturnStatement, VariableExpr,
)

data = CodegenData()
FunctionAST("int", "main", [
    DeclareStatement("int", "x"),
    ReAssignStatement("x", BinaryExpr("+", NumberExpr(2), NumberExpr(2))),
    ReturnStatement(VariableExpr("x")),
]).codegen(data)
data.verify()
print(data.module)
```

`BinaryExpr` supports `+ - * /` and the comparisons `<` and `>`. Unknown
variables, operators or function types raise `CodegenError`.

## What it does not do

There is no parser: the lexer produces tokens, but expression and syntax
trees are built in Python code. There is no command-line program; the package
is used as a library.

## Running the tests

```
pip install .[test]
pytest
```