from .ir_model import (
    Argument,
    BasicBlock,
    Constant,
    DebugVariable,
    Function,
    GlobalValue,
    Instruction,
    Module,
    Value,
    underlying_object,
)
from .llvm_parser import IRParseError, LLVMParser
from .parser_driver import CompilationError, ParserDriver, compile_to_ir
