"""A small typed intermediate representation with a module/function/block hierarchy."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

I32 = "i32"
I1 = "i1"
PTR = "ptr"
VOID = "void"
LABEL = "label"

_BINARY_OPS = {"+": "add", "-": "sub", "*": "mul", "/": "sdiv"}
_ICMP_PREDICATES = {
    "<": "slt",
    ">": "sgt",
    "<=": "sle",
    ">=": "sge",
    "==": "eq",
    "!=": "ne",
}
_TERMINATORS = frozenset({"ret", "br"})


def _wrap(value: int, bits: int) -> int:
    if bits == 1:
        return value & 1
    modulus = 1 << bits
    half = 1 << (bits - 1)
    return (value + half) % modulus - half


class Value:
    """Anything an instruction can take as an operand."""

    def __init__(self, type_: str, name: str = "") -> None:
        self.type = type_
        self.name = name

    def ref(self, slots: Optional[dict[Value, int]] = None) -> str:
        """How the value is written where it is used."""
        if self.name:
            return f"%{self.name}"
        if slots is not None and self in slots:
            return f"%{slots[self]}"
        return "%<badref>"


class Constant(Value):
    """An integer constant of a fixed width."""

    def __init__(self, value: int, type_: str = I32) -> None:
        super().__init__(type_)
        bits = 1 if type_ == I1 else 32
        self.value = _wrap(int(value), bits)

    def ref(self, slots: Optional[dict[Value, int]] = None) -> str:
        if self.type == I1:
            return "true" if self.value else "false"
        return str(self.value)

    def __repr__(self) -> str:
        return f"Constant({self.value!r}, {self.type!r})"


class Instruction(Value):
    """One operation inside a basic block."""

    def __init__(
        self,
        opcode: str,
        type_: str,
        operands: Sequence[Value] = (),
        name: str = "",
        *,
        predicate: Optional[str] = None,
        targets: Sequence["BasicBlock"] = (),
        allocated_type: Optional[str] = None,
    ) -> None:
        super().__init__(type_, name)
        self.opcode = opcode
        self.operands = list(operands)
        self.predicate = predicate
        self.targets = list(targets)
        self.allocated_type = allocated_type
        self.block: Optional[BasicBlock] = None

    @property
    def is_terminator(self) -> bool:
        return self.opcode in _TERMINATORS

    def _render(self, slots: dict[Value, int]) -> str:
        ops = self.operands
        op = self.opcode
        if op == "alloca":
            body = f"alloca {self.allocated_type}, align 4"
        elif op == "store":
            value, pointer = ops
            body = f"store {value.type} {value.ref(slots)}, ptr {pointer.ref(slots)}, align 4"
        elif op == "load":
            body = f"load {self.type}, ptr {ops[0].ref(slots)}, align 4"
        elif op == "icmp":
            lhs, rhs = ops
            body = f"icmp {self.predicate} {lhs.type} {lhs.ref(slots)}, {rhs.ref(slots)}"
        elif op == "ret":
            body = "ret void" if not ops else f"ret {ops[0].type} {ops[0].ref(slots)}"
        elif op == "br":
            if ops:
                first, second = self.targets
                body = (
                    f"br i1 {ops[0].ref(slots)}, label {first.ref(slots)}, "
                    f"label {second.ref(slots)}"
                )
            else:
                body = f"br label {self.targets[0].ref(slots)}"
        else:
            lhs, rhs = ops
            body = f"{op} {self.type} {lhs.ref(slots)}, {rhs.ref(slots)}"
        if self.type == VOID:
            return body
        return f"{self.ref(slots)} = {body}"

    def __str__(self) -> str:
        function = self.block.function if self.block is not None else None
        slots = function._slots() if function is not None else {}
        return self._render(slots)

    def __repr__(self) -> str:
        return f"Instruction({self.opcode!r}, {self.type!r}, name={self.name!r})"


class BasicBlock(Value):
    """A labelled list of instructions belonging to a function."""

    def __init__(self, name: str, function: Optional["Function"]) -> None:
        super().__init__(LABEL, name)
        self.function = function
        self.instructions: list[Instruction] = []

    @classmethod
    def create(cls, name: str, function: "Function") -> "BasicBlock":
        """Create a block and append it to ``function``."""
        block = cls(name, function)
        function.add_block(block)
        return block

    def append(self, instruction: Instruction) -> Instruction:
        instruction.block = self
        self.instructions.append(instruction)
        return instruction

    def _label(self, slots: dict[Value, int]) -> str:
        if self.name:
            return self.name
        return str(slots.get(self, "<badref>"))

    def _render(self, slots: dict[Value, int]) -> str:
        lines = [f"{self._label(slots)}:"]
        lines.extend(f"  {inst._render(slots)}" for inst in self.instructions)
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        slots = self.function._slots() if self.function is not None else {}
        return self._render(slots)

    def __repr__(self) -> str:
        return f"BasicBlock({self.name!r})"


class Function:
    """A function returning ``i32`` and taking no arguments."""

    return_type = I32

    def __init__(self, name: str, module: Optional["Module"]) -> None:
        self.name = name
        self.module = module
        self.blocks: list[BasicBlock] = []
        self._names: set[str] = set()

    @classmethod
    def create(cls, name: str, module: "Module") -> "Function":
        """Create a function and add it to ``module``."""
        func = cls(name, module)
        module.add_function(func)
        return func

    def _unique_name(self, base: str) -> str:
        if not base:
            return ""
        candidate = base
        suffix = 0
        while candidate in self._names:
            suffix += 1
            candidate = f"{base}{suffix}"
        self._names.add(candidate)
        return candidate

    def add_block(self, block: BasicBlock) -> None:
        block.function = self
        block.name = self._unique_name(block.name)
        self.blocks.append(block)

    def _slots(self) -> dict[Value, int]:
        slots: dict[Value, int] = {}
        for block in self.blocks:
            if not block.name:
                slots[block] = len(slots)
            for inst in block.instructions:
                if inst.type != VOID and not inst.name:
                    slots[inst] = len(slots)
        return slots

    def __str__(self) -> str:
        slots = self._slots()
        body = "\n".join(block._render(slots) for block in self.blocks)
        return f"define {self.return_type} @{self.name}() {{\n{body}}}\n"

    def __repr__(self) -> str:
        return f"Function({self.name!r})"


class Module:
    """A named collection of functions."""

    def __init__(self, name: str = "my_module") -> None:
        self.name = name
        self.functions: list[Function] = []

    def add_function(self, func: Function) -> None:
        func.module = self
        self.functions.append(func)

    def __str__(self) -> str:
        header = f"; ModuleID = '{self.name}'\nsource_filename = \"{self.name}\"\n"
        return header + "".join(f"\n{func}" for func in self.functions)

    def __repr__(self) -> str:
        return f"Module({self.name!r})"


class Builder:
    """Appends new instructions at the end of the current insert block."""

    def __init__(self) -> None:
        self.insert_block: Optional[BasicBlock] = None

    def set_insert_point(self, block: BasicBlock) -> None:
        self.insert_block = block

    def _block(self) -> BasicBlock:
        if self.insert_block is None:
            raise RuntimeError("builder has no insert point")
        return self.insert_block

    def _name(self, name: str) -> str:
        function = self._block().function
        if function is None:
            return name
        return function._unique_name(name)

    def _insert(self, instruction: Instruction) -> Instruction:
        return self._block().append(instruction)

    @staticmethod
    def _require(value: Value, type_: str, what: str) -> None:
        if value.type != type_:
            raise TypeError(f"{what} must have type {type_}, not {value.type}")

    def create_alloca(self, name: str) -> Instruction:
        """Reserve a stack slot for one ``i32``."""
        return self._insert(
            Instruction("alloca", PTR, (), self._name(name), allocated_type=I32)
        )

    def create_store(self, value: Value, pointer: Value) -> Instruction:
        self._require(pointer, PTR, "store destination")
        allocated = getattr(pointer, "allocated_type", None)
        if allocated is not None and value.type != allocated:
            raise TypeError(f"cannot store {value.type} into a slot of {allocated}")
        return self._insert(Instruction("store", VOID, (value, pointer)))

    def create_load(self, pointer: Value, name: str) -> Instruction:
        self._require(pointer, PTR, "load source")
        allocated = getattr(pointer, "allocated_type", None)
        if allocated is None:
            raise TypeError("load source has no allocated type")
        return self._insert(Instruction("load", allocated, (pointer,), self._name(name)))

    def create_binary(self, op: str, lhs: Value, rhs: Value) -> Instruction:
        """Integer arithmetic; ``op`` is ``+ - * /`` or an opcode name."""
        opcode = _BINARY_OPS.get(op, op)
        if opcode not in _BINARY_OPS.values():
            raise ValueError(f"unknown binary operation: {op!r}")
        self._require(lhs, I32, "left operand")
        self._require(rhs, I32, "right operand")
        return self._insert(Instruction(opcode, I32, (lhs, rhs), self._name("")))

    def create_icmp(self, predicate: str, lhs: Value, rhs: Value) -> Instruction:
        """Integer comparison; ``predicate`` is a symbol or a predicate name."""
        pred = _ICMP_PREDICATES.get(predicate, predicate)
        if pred not in _ICMP_PREDICATES.values() and pred not in ("ult", "ugt", "ule", "uge"):
            raise ValueError(f"unknown comparison predicate: {predicate!r}")
        if lhs.type != rhs.type or lhs.type not in (I32, I1):
            raise TypeError(f"cannot compare {lhs.type} with {rhs.type}")
        return self._insert(
            Instruction("icmp", I1, (lhs, rhs), self._name(""), predicate=pred)
        )

    def create_ret(self, value: Optional[Value]) -> Instruction:
        operands = () if value is None else (value,)
        return self._insert(Instruction("ret", VOID, operands))

    def create_br(self, target: BasicBlock) -> Instruction:
        if not isinstance(target, BasicBlock):
            raise TypeError("branch target must be a basic block")
        return self._insert(Instruction("br", VOID, (), targets=(target,)))

    def create_cond_br(
        self, cond: Value, then_block: BasicBlock, else_block: BasicBlock
    ) -> Instruction:
        self._require(cond, I1, "branch condition")
        if not isinstance(then_block, BasicBlock) or not isinstance(else_block, BasicBlock):
            raise TypeError("branch targets must be basic blocks")
        return self._insert(
            Instruction("br", VOID, (cond,), targets=(then_block, else_block))
        )


def _function_problems(func: Function) -> Iterable[str]:
    slots = func._slots()
    if not func.blocks:
        yield f"function @{func.name} has no blocks"
    for block in func.blocks:
        where = f"block {block._label(slots)} of @{func.name}"
        if not block.instructions or not block.instructions[-1].is_terminator:
            yield f"{where} does not end with a terminator"
        for inst in block.instructions[:-1]:
            if inst.is_terminator:
                yield f"terminator found in the middle of {where}"
        for inst in block.instructions:
            if inst.opcode == "ret":
                returned = inst.operands[0].type if inst.operands else VOID
                if returned != func.return_type:
                    yield (
                        f"@{func.name} returns {func.return_type} "
                        f"but {where} returns {returned}"
                    )
            for operand in inst.operands:
                if isinstance(operand, Instruction) and (
                    operand.block is None or operand.block.function is not func
                ):
                    yield f"{where} uses a value defined outside @{func.name}"
            for target in inst.targets:
                if target.function is not func:
                    yield f"{where} branches to a block outside @{func.name}"


class CodegenData:
    """State shared by code generation: the module, a builder and variable slots."""

    def __init__(self) -> None:
        self.module = Module("my_module")
        self.builder = Builder()
        self.named_vars: dict[str, Instruction] = {}

    def verify(self) -> None:
        """Raise ``ValueError`` listing every structural problem in the module."""
        problems = [p for func in self.module.functions for p in _function_problems(func)]
        if problems:
            raise ValueError("\n".join(problems))