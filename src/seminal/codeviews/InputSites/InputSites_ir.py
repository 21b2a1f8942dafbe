from dataclasses import dataclass, field

from loguru import logger

from ...ir_parser.ir_model import underlying_object

# formatted scan, file open, character read
DEFAULT_INPUT_FUNCTIONS = ("scanf", "fopen", "getc")
# input operations whose result is the handle that gets captured
DEFAULT_HANDLE_FUNCTIONS = ("open",)


class InputClassifier:
    """
    Decides from a callee's name whether a call reads external input.

    Matching is by substring so versioned and mangled symbols such as
    `__isoc99_scanf` or `_IO_getc` are recognised.
    """

    def __init__(self, input_functions=None, handle_functions=None):
        if input_functions is None:
            input_functions = DEFAULT_INPUT_FUNCTIONS
        if handle_functions is None:
            handle_functions = DEFAULT_HANDLE_FUNCTIONS
        self.input_functions = tuple(input_functions)
        self.handle_functions = tuple(handle_functions)

    def __repr__(self):
        return f"InputClassifier(input={self.input_functions}, handle={self.handle_functions})"

    @classmethod
    def from_properties(cls, properties):
        return cls(properties.get("input_functions"), properties.get("handle_functions"))

    def matching_pattern(self, callee_name):
        if not callee_name:
            return None
        for pattern in self.input_functions:
            if pattern in callee_name:
                return pattern
        return None

    def is_input_function(self, callee_name):
        return self.matching_pattern(callee_name) is not None

    def is_handle_function(self, callee_name):
        if not callee_name:
            return False
        return any(pattern in callee_name for pattern in self.handle_functions)


def is_input_function(callee_name, input_functions=DEFAULT_INPUT_FUNCTIONS):
    return InputClassifier(input_functions).is_input_function(callee_name)


@dataclass
class InputSite:
    """One call to an input function and the variables it was attributed to"""
    call: object
    callee: str
    policy: str
    line: int = -1
    variables: list = field(default_factory=list)


def attribute_handle(call, function):
    """
    Capture-the-handle policy: the first store in the call's block, after
    the call, whose stored value is the call's result names the handle.
    """
    if not call.produces_value:
        return []
    block = call.block
    position = block.instructions.index(call)
    for instruction in block.instructions[position + 1:]:
        if instruction.kind == "store" and instruction.value is call:
            binding = function.debug_binding(underlying_object(instruction.pointer))
            return [binding] if binding is not None else []
    logger.debug("No store captures the result of {} in block {}", call.callee, block.label)
    return []


def attribute_arguments(call, function):
    """Destination-argument policy: every argument bound to a source variable"""
    bindings = []
    for argument in call.args:
        binding = function.debug_binding(underlying_object(argument))
        if binding is not None:
            bindings.append(binding)
    return bindings


def scan_input_sites(function, classifier, table, io_variables):
    """
    Attribute every input call in a function to the source variables it
    reads into (or whose handle it produces).

    Args:
        function: the IR function
        classifier: InputClassifier
        table: VariableTable receiving a record per attributed variable
        io_variables: set receiving the attributed names

    Returns:
        list of InputSite, in instruction order
    """
    sites = []
    for instruction in function.instructions():
        if instruction.kind != "call" or not classifier.is_input_function(instruction.callee):
            continue

        if classifier.is_handle_function(instruction.callee):
            policy = "handle"
            bindings = attribute_handle(instruction, function)
        else:
            policy = "argument"
            bindings = attribute_arguments(instruction, function)

        site = InputSite(instruction, instruction.callee, policy, instruction.debug_line)
        for binding in bindings:
            # a filled argument is captured at the call, a handle where it is declared
            if policy == "argument" and site.line != -1:
                table.upsert(binding.name, site.line)
            else:
                table.upsert(binding.name, binding.line)
            io_variables.add(binding.name)
            site.variables.append(binding.name)
        logger.debug(
            "Input call {} at line {} in {} -> {}",
            site.callee, site.line, function.name, site.variables or "no variable",
        )
        sites.append(site)
    return sites
