"""Lexer, expression trees, control flow graphs, SSA construction and a small typed IR."""

__version__ = "0.1.0"