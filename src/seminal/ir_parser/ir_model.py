"""
In-memory model of an LLVM IR module.

The model is read-only once built by :class:`~seminal.ir_parser.llvm_parser.LLVMParser`:
analyses walk functions, blocks and instruction operands but never change them.
"""
from dataclasses import dataclass

from ..utils.ir_nodes import instruction_types, unquote


@dataclass(frozen=True)
class DebugVariable:
    """A declared source variable (the target of a debug binding)"""
    name: str
    line: int = -1


class Value:
    is_instruction = False

    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"

    def __str__(self):
        return self.name


class Constant(Value):
    """Literals, metadata operands and constant expressions"""


class Argument(Value):
    def __init__(self, name, index, function=None):
        super().__init__(name)
        self.index = index
        self.function = function


class GlobalValue(Value):
    def __init__(self, name, debug_variable=None):
        super().__init__(name)
        self.debug_variable = debug_variable

    @property
    def symbol(self):
        return unquote(self.name)


class Instruction(Value):
    is_instruction = True

    def __init__(self, opcode, operands=None, name=None, text="", callee=None,
                 targets=None, debug_line=-1):
        super().__init__(name)
        self.opcode = opcode
        self.operands = list(operands or [])
        self.text = text
        self.callee_name = callee
        self.targets = list(targets or [])
        self.debug_line = debug_line
        self.block = None

    def __repr__(self):
        return f"Instruction({self.text or self.opcode})"

    def __str__(self):
        return self.name if self.name else self.text

    @property
    def kind(self):
        for kind in ("load", "store", "call", "branch"):
            if self.opcode in instruction_types[kind]:
                return kind
        return "other"

    # load
    @property
    def pointer(self):
        if self.kind == "load":
            return self.operands[0]
        if self.kind == "store":
            return self.operands[1]
        raise AttributeError(f"{self.opcode} has no pointer operand")

    # store
    @property
    def value(self):
        if self.kind != "store":
            raise AttributeError(f"{self.opcode} has no stored value")
        return self.operands[0]

    # call
    @property
    def callee(self):
        """Resolved callee name, or None for an indirect call"""
        return self.callee_name

    @property
    def args(self):
        return self.operands

    @property
    def produces_value(self):
        return self.name is not None

    # br
    @property
    def is_conditional(self):
        return self.kind == "branch" and len(self.operands) == 1 and len(self.targets) == 2

    @property
    def condition(self):
        if not self.is_conditional:
            raise AttributeError("unconditional branch has no condition")
        return self.operands[0]


class BasicBlock:
    def __init__(self, label, function=None):
        self.label = label
        self.function = function
        self.instructions = []

    def __repr__(self):
        return f"BasicBlock({self.label})"

    def __iter__(self):
        return iter(self.instructions)

    def append(self, instruction):
        instruction.block = self
        self.instructions.append(instruction)

    @property
    def terminator(self):
        if self.instructions and self.instructions[-1].opcode in instruction_types["terminator"]:
            return self.instructions[-1]
        return None

    @property
    def successors(self):
        terminator = self.terminator
        return list(terminator.targets) if terminator is not None else []


class Function:
    def __init__(self, name, arguments=None, module=None):
        self.name = name
        self.arguments = list(arguments or [])
        self.module = module
        self.blocks = []
        self.debug_bindings = {}

    def __repr__(self):
        return f"Function({self.name})"

    @property
    def entry(self):
        return self.blocks[0] if self.blocks else None

    def block(self, label):
        for block in self.blocks:
            if block.label == label:
                return block
        raise KeyError(label)

    def instructions(self):
        for block in self.blocks:
            yield from block.instructions

    def debug_binding(self, location):
        """
        Map a storage location to the source variable it was declared as.

        Args:
            location: alloca/argument/SSA value, or a global

        Returns:
            DebugVariable, or None when no debug metadata describes it
        """
        if location is None:
            return None
        if isinstance(location, GlobalValue):
            return location.debug_variable
        if location.name is None:
            return None
        return self.debug_bindings.get(location.name)


class Module:
    def __init__(self, source_filename=None):
        self.source_filename = source_filename
        self.functions = []
        self.declarations = []
        self.globals = {}

    def __iter__(self):
        return iter(self.functions)

    def function(self, name):
        for function in self.functions:
            if function.name == name:
                return function
        raise KeyError(name)


def underlying_object(value):
    """
    Strip address arithmetic and pointer casts down to the storage location
    a value refers to. A loaded pointer resolves to the location it was
    loaded from.
    """
    seen = set()
    while isinstance(value, Instruction) and id(value) not in seen:
        seen.add(id(value))
        if value.opcode in instruction_types["address"] and value.operands:
            value = value.operands[0]
        elif value.kind == "load":
            value = value.pointer
        else:
            break
    return value
