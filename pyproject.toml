[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ssaforge"
version = "0.1.0"
description = "A small compiler toolkit: lexer, expression trees, control flow graphs, dominance frontiers, SSA construction with phi nodes, and a minimal typed IR."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "ssa",
    "control-flow-graph",
    "dominators",
    "phi-nodes",
    "intermediate-representation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ssaforge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
