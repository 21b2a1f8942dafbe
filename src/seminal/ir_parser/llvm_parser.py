import re

from loguru import logger

from .ir_model import (
    Argument,
    BasicBlock,
    Constant,
    DebugVariable,
    Function,
    GlobalValue,
    Instruction,
    Module,
)
from ..utils.ir_nodes import (
    IDENTIFIER,
    debug_intrinsics,
    debug_records,
    debug_reference_pattern,
    global_value_pattern,
    instruction_types,
    label_definition_pattern,
    label_reference_pattern,
    local_value_pattern,
    matching_paren,
    split_top_level,
    strip_attachments,
    strip_comment,
    unquote,
    value_token,
)

metadata_definition = re.compile(r"^!(\d+)\s*=\s*(?:distinct\s+)?(.*)$")
type_definition = re.compile(r"^(%" + IDENTIFIER + r")\s*=\s*type\b")
global_definition = re.compile(r"^(@" + IDENTIFIER + r")\s*=")
result_assignment = re.compile(r"^(%" + IDENTIFIER + r")\s*=\s*(.*)$")
callee_reference = re.compile(r"([@%]" + IDENTIFIER + r")\(")
source_filename = re.compile(r'^source_filename\s*=\s*"(.*)"')

module_level_prefixes = (
    "target ", "attributes ", "declare ", "define ", "source_filename", "!", "$",
    "module asm", "uselistorder", "@", "%",
)


class IRParseError(ValueError):
    def __init__(self, message, line_number=None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


def metadata_field(text, field):
    """Read `field: value` out of a specialized metadata node"""
    match = re.search(r"\b" + field + r':\s*("(?:[^"\\]|\\.)*"|[^,)]+)', text)
    if not match:
        return None
    value = match.group(1).strip()
    if value.startswith('"'):
        return value[1:-1]
    return value


class LLVMParser:
    """
    Line-oriented reader for clang's textual LLVM IR.

    Operands are collected as spellings while a function body is read and
    resolved to values once the closing brace is seen, so phi nodes may
    refer to instructions defined further down.
    """

    def __init__(self, src_code, source_name=None):
        self.src_code = src_code
        self.source_name = source_name
        self.metadata = {}
        self.type_names = set()
        self.module = None
        self._function = None
        self._block = None
        self._pending = []
        self._values = {}

    def parse(self):
        self.module = Module(self.source_name)
        lines = self.src_code.splitlines()
        self.collect_metadata(lines)

        continued = ""
        for line_number, raw_line in enumerate(lines, start=1):
            line = strip_comment(raw_line).strip()
            if not line:
                continue
            if self._function is not None:
                # switch tables span several lines
                if continued:
                    line = f"{continued} {line}"
                if line.count("[") > line.count("]"):
                    continued = line
                    continue
                continued = ""
                self.parse_body_line(line, line_number)
            else:
                self.parse_module_line(line, line_number)

        if self._function is not None:
            raise IRParseError(f"unterminated body of function {self._function.name}", len(lines))
        return self.module

    def collect_metadata(self, lines):
        for raw_line in lines:
            line = raw_line.strip()
            match = metadata_definition.match(line)
            if match:
                self.metadata[match.group(1)] = match.group(2)
                continue
            match = type_definition.match(line)
            if match:
                self.type_names.add(match.group(1))

    def debug_variable(self, node_id):
        """Resolve `!N` to a DebugVariable if it names a (global) variable"""
        text = self.metadata.get(node_id.lstrip("!"))
        if text is None:
            return None
        if text.startswith("!DIGlobalVariableExpression"):
            var = metadata_field(text, "var")
            return self.debug_variable(var) if var else None
        if text.startswith("!DILocalVariable") or text.startswith("!DIGlobalVariable"):
            name = metadata_field(text, "name")
            if name is None:
                return None
            line = metadata_field(text, "line")
            return DebugVariable(name, int(line) if line else -1)
        return None

    def debug_line(self, text):
        match = debug_reference_pattern.search(text)
        if not match:
            return -1
        location = self.metadata.get(match.group(1), "")
        line = metadata_field(location, "line") if location.startswith("!DILocation") else None
        return int(line) if line else -1

    # Module level

    def parse_module_line(self, line, line_number):
        match = source_filename.match(line)
        if match:
            self.module.source_filename = match.group(1)
            return
        if line.startswith("define "):
            self.start_function(line, line_number)
            return
        if line.startswith("declare "):
            match = callee_reference.search(line)
            if match:
                self.module.declarations.append(unquote(match.group(1)))
            return
        match = global_definition.match(line)
        if match:
            name = match.group(1)
            debug_match = debug_reference_pattern.search(line)
            variable = self.debug_variable(debug_match.group(1)) if debug_match else None
            self.module.globals[name] = GlobalValue(name, variable)
            return
        if type_definition.match(line) or metadata_definition.match(line):
            return
        if line.startswith("%") or line.split()[0] in self.known_opcodes():
            raise IRParseError(f"instruction outside of a function: {line}", line_number)
        if not line.startswith(module_level_prefixes):
            logger.warning("Skipping unrecognized IR line {}: {}", line_number, line)

    @staticmethod
    def known_opcodes():
        opcodes = set()
        for kind in ("load", "store", "call", "terminator", "cast", "storage"):
            opcodes.update(instruction_types[kind])
        return opcodes

    def start_function(self, line, line_number):
        match = callee_reference.search(line)
        if not match or not line.endswith("{"):
            raise IRParseError(f"malformed function header: {line}", line_number)
        name = unquote(match.group(1))
        open_paren = match.end() - 1
        close_paren = matching_paren(line, open_paren)
        if close_paren < 0:
            raise IRParseError(f"unbalanced parameter list: {line}", line_number)

        function = Function(name, module=self.module)
        self._values = {}
        unnamed = 0
        for index, piece in enumerate(split_top_level(line[open_paren + 1:close_paren])):
            token = value_token(piece)
            if piece == "..." or token is None:
                continue
            argument = Argument(token, index, function)
            function.arguments.append(argument)
            self._values[token] = argument
            if unquote(token).isdigit():
                unnamed += 1

        self._function = function
        self._block = None
        self._pending = []
        self._entry_label = str(unnamed)

    def finish_function(self):
        function = self._function
        for instruction, spellings in self._pending:
            instruction.operands = [
                value for value in (self.resolve(spelling) for spelling in spellings)
                if value is not None
            ]
        self.module.functions.append(function)
        logger.debug("Parsed function {} ({} blocks)", function.name, len(function.blocks))
        self._function = None
        self._block = None
        self._pending = []
        self._values = {}

    def resolve(self, spelling):
        if local_value_pattern.match(spelling):
            if spelling in self._values:
                return self._values[spelling]
            if spelling in self.type_names:
                return None
            logger.warning("Unknown value {} in function {}", spelling, self._function.name)
            return Constant(spelling)
        if global_value_pattern.match(spelling):
            if spelling not in self.module.globals:
                self.module.globals[spelling] = GlobalValue(spelling)
            return self.module.globals[spelling]
        return Constant(spelling)

    # Function bodies

    def parse_body_line(self, line, line_number):
        if line == "}":
            self.finish_function()
            return

        match = label_definition_pattern.match(line)
        if match and not line.startswith("%"):
            self._block = BasicBlock(unquote(match.group(1)), self._function)
            self._function.blocks.append(self._block)
            return

        if self._block is None:
            self._block = BasicBlock(self._entry_label, self._function)
            self._function.blocks.append(self._block)

        if line.startswith(tuple(debug_records)):
            self.parse_debug_record(line)
            return

        self.parse_instruction(line)

    def parse_debug_record(self, line):
        """`#dbg_declare(ptr %a, !15, !DIExpression(), !16)`"""
        open_paren = line.find("(")
        close_paren = matching_paren(line, open_paren)
        pieces = split_top_level(line[open_paren + 1:close_paren])
        if len(pieces) >= 2:
            self.bind(value_token(pieces[0]), pieces[1].strip())

    def bind(self, location, node_id):
        if location is None or not node_id.startswith("!"):
            return
        variable = self.debug_variable(node_id)
        if variable is not None:
            self._function.debug_bindings[location] = variable

    def parse_instruction(self, line):
        name = None
        rest = line
        match = result_assignment.match(line)
        if match:
            name, rest = match.group(1), match.group(2)

        debug_line = self.debug_line(rest)
        rest = strip_attachments(rest)
        words = rest.split(None, 1)
        while words and words[0] in instruction_types["call_prefixes"]:
            words = words[1].split(None, 1) if len(words) > 1 else []
        if not words:
            return
        opcode = words[0]
        body = words[1] if len(words) > 1 else ""

        callee = None
        targets = [unquote(label) for label in label_reference_pattern.findall(body)]
        if opcode in instruction_types["call"]:
            callee, spellings = self.call_operands(body)
        elif opcode == "phi":
            spellings = self.phi_operands(body)
        elif opcode in instruction_types["terminator"]:
            spellings = [
                value_token(piece) for piece in split_top_level(body.split("[", 1)[0])
                if not piece.startswith("label ")
            ]
        else:
            spellings = [value_token(piece) for piece in split_top_level(body)]
        spellings = [spelling for spelling in spellings if spelling is not None]

        instruction = Instruction(
            opcode, name=name, text=line, callee=callee, targets=targets, debug_line=debug_line
        )
        self._block.append(instruction)
        self._pending.append((instruction, spellings))
        if name is not None:
            self._values[name] = instruction

        if callee in debug_intrinsics and len(spellings) >= 2:
            self.bind(spellings[0], spellings[1])

    @staticmethod
    def call_operands(body):
        match = callee_reference.search(body)
        if not match:
            return None, []
        target = match.group(1)
        callee = unquote(target) if target.startswith("@") else None
        open_paren = match.end() - 1
        close_paren = matching_paren(body, open_paren)
        if close_paren < 0:
            return callee, []
        pieces = split_top_level(body[open_paren + 1:close_paren])
        return callee, [value_token(piece) for piece in pieces]

    @staticmethod
    def phi_operands(body):
        spellings = []
        for piece in split_top_level(body[body.find("["):] if "[" in body else ""):
            inner = piece.strip()[1:-1]
            incoming = split_top_level(inner)
            if incoming:
                spellings.append(value_token(incoming[0]) or incoming[0].strip())
        return spellings
