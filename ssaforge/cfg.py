"""Basic blocks, control flow graph, dominator tree and dominance frontiers."""

from __future__ import annotations

from typing import Iterable, Optional

from .statements import Statement


class BasicBlock:
    """A straight-line sequence of statements with CFG edges."""

    def __init__(self, index: int, label: str) -> None:
        self.index = index
        self.label = label
        self.statements: list[Statement] = []
        self.succs: list[BasicBlock] = []
        self.preds: list[BasicBlock] = []
        self.dominator: Optional[BasicBlock] = None
        self.dominated_blocks: list[BasicBlock] = []

    def __str__(self) -> str:
        return f"bb #{self.index} {self.label}"

    def __repr__(self) -> str:
        return f"BasicBlock({self.index!r}, {self.label!r})"

    def add_statement(self, statement: Statement) -> None:
        self.statements.append(statement)

    @staticmethod
    def add_link(pred: "BasicBlock", succ: "BasicBlock") -> None:
        """Add an edge ``pred -> succ`` unless it already exists."""
        if pred not in succ.preds:
            succ.preds.append(pred)
        if succ not in pred.succs:
            pred.succs.append(succ)


class ControlFlowGraph:
    """A graph of basic blocks whose first block is the entry."""

    def __init__(self) -> None:
        self.basic_blocks: list[BasicBlock] = []
        self._invalidate()

    def _invalidate(self) -> None:
        self._pre: Optional[list[BasicBlock]] = None
        self._post: Optional[list[BasicBlock]] = None
        self._dominators_ready = False
        self._frontier: Optional[dict[BasicBlock, set[BasicBlock]]] = None

    def add_basic_block(self, block: BasicBlock) -> None:
        self.basic_blocks.append(block)
        self._invalidate()

    def _entry(self) -> BasicBlock:
        if not self.basic_blocks:
            raise ValueError("control flow graph has no blocks")
        return self.basic_blocks[0]

    def _traverse(self) -> None:
        if self._pre is not None and self._post is not None:
            return
        entry = self._entry()
        pre = [entry]
        post: list[BasicBlock] = []
        visited = {entry}
        stack = [(entry, iter(entry.succs))]
        while stack:
            block, successors = stack[-1]
            for nxt in successors:
                if nxt not in visited:
                    visited.add(nxt)
                    pre.append(nxt)
                    stack.append((nxt, iter(nxt.succs)))
                    break
            else:
                stack.pop()
                post.append(block)
        self._pre = pre
        self._post = post

    def pre_order(self) -> list[BasicBlock]:
        """Reachable blocks in depth-first pre-order from the entry."""
        self._traverse()
        return list(self._pre)

    def post_order(self) -> list[BasicBlock]:
        """Reachable blocks in depth-first post-order from the entry."""
        self._traverse()
        return list(self._post)

    @staticmethod
    def _reachable_avoiding(entry: BasicBlock, blocked: BasicBlock) -> set[BasicBlock]:
        visited = {blocked}
        stack = [entry]
        while stack:
            block = stack.pop()
            if block in visited:
                continue
            visited.add(block)
            stack.extend(nxt for nxt in block.succs if nxt not in visited)
        return visited

    def _compute_dominators(self) -> None:
        if self._dominators_ready:
            return
        self._traverse()
        order = self._pre
        for block in self.basic_blocks:
            block.dominator = None
            block.dominated_blocks.clear()
        entry = order[0]
        # Blocks unreachable once a candidate is removed are dominated by it;
        # pre-order makes the last such candidate the immediate dominator.
        for candidate in order:
            reachable = self._reachable_avoiding(entry, candidate)
            for block in order:
                if block not in reachable:
                    block.dominator = candidate
        for block in self.basic_blocks:
            if block.dominator is not None:
                block.dominator.dominated_blocks.append(block)
        self._dominators_ready = True

    def _compute_frontier(self) -> dict[BasicBlock, set[BasicBlock]]:
        if self._frontier is not None:
            return self._frontier
        self._compute_dominators()
        frontier: dict[BasicBlock, set[BasicBlock]] = {b: set() for b in self.basic_blocks}
        for x in self._post:
            if x not in frontier:
                raise KeyError(f"{x} is not in the graph")
            for y in x.succs:
                if y.dominator is not x:
                    frontier[x].add(y)
            for z in x.dominated_blocks:
                for y in frontier[z]:
                    if y.dominator is not x:
                        frontier[x].add(y)
        self._frontier = frontier
        return frontier

    def dominance_frontier(self, block: BasicBlock) -> frozenset[BasicBlock]:
        """The dominance frontier of one block."""
        frontier = self._compute_frontier()
        if block not in frontier:
            raise KeyError(f"{block} is not in the graph")
        return frozenset(frontier[block])

    def _merged_frontier(self, blocks: Iterable[BasicBlock]) -> set[BasicBlock]:
        merged: set[BasicBlock] = set()
        for block in blocks:
            merged |= self.dominance_frontier(block)
        return merged

    def dominance_frontier_for(self, blocks: Iterable[BasicBlock]) -> set[BasicBlock]:
        """The iterated dominance frontier of a set of blocks."""
        subset = set(blocks)
        result: set[BasicBlock] = set()
        current = self._merged_frontier(subset)
        while True:
            current |= subset
            current = self._merged_frontier(current)
            if current == result:
                return result
            result = set(current)

    def commit_all_changes(self) -> None:
        """Compute orders, the dominator tree and dominance frontiers."""
        self._traverse()
        self._compute_dominators()
        self._compute_frontier()