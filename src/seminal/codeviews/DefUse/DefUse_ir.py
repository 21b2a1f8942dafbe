import networkx as nx
from loguru import logger

from ...ir_parser.ir_model import underlying_object


def seeds_for_loop(loop):
    """Condition operands of the conditional branches in a loop's header"""
    return [
        instruction.condition
        for instruction in loop.header.instructions
        if instruction.kind == "branch" and instruction.is_conditional
    ]


def record_binding(function, location, table):
    binding = function.debug_binding(location)
    if binding is None:
        binding = function.debug_binding(underlying_object(location))
    if binding is not None:
        table.upsert(binding.name, binding.line)


def trace(seed, visited, table, function):
    """
    Walk the operand graph backward from `seed`, recording every storage
    location read on the way that carries a debug binding.

    Each value is expanded at most once per `visited` set, which keeps the
    walk finite on cyclic graphs (phi nodes, store/load round trips).
    Operands are expanded left to right.

    Args:
        seed: value to start from
        visited: set of values already expanded; updated in place
        table: VariableTable receiving the bound variables
        function: function owning the values, for debug bindings
    """
    worklist = [seed]
    while worklist:
        value = worklist.pop()
        if value in visited:
            continue
        visited.add(value)

        if not value.is_instruction:
            continue

        kind = value.kind
        if kind == "load":
            record_binding(function, value.pointer, table)
            successors = [value.pointer]
        elif kind == "store":
            successors = [value.value, value.pointer]
        elif kind == "call":
            # the call's own result is `value`, already marked visited
            successors = list(value.args)
        else:
            successors = list(value.operands)

        logger.trace("trace {} ({}) -> {}", value, kind, [str(s) for s in successors])
        worklist.extend(reversed(successors))


def trace_loops(function, loop_info, table):
    """Trace the condition of every loop in `loop_info` into `table`"""
    for loop in loop_info:
        for seed in seeds_for_loop(loop):
            logger.debug("Seed {} from loop header {} in {}", seed, loop.header_label, function.name)
            trace(seed, set(), table, function)


def def_use_chain(condition, function, classifier):
    """
    Build the backward def-use chain of a branch condition as a tree-shaped
    DiGraph, logging each operand as it is reached. Calls to input
    functions end their branch of the chain.

    Returns:
        (graph, input_calls) where input_calls lists the callee names met
    """
    graph = nx.DiGraph()
    input_calls = []
    visited = set()
    counter = 0
    stack = [(condition, None, "")]

    while stack:
        value, parent, indent = stack.pop()
        node = f"n{counter}"
        counter += 1
        graph.add_node(node, label=str(value))
        if parent is not None:
            graph.add_edge(parent, node, dataflow_type="comesFrom")

        if not value.is_instruction:
            logger.info("{}- Operand '{}'", indent, value)
            continue
        if value in visited:
            logger.info("{}- Operand '{}' already expanded", indent, value)
            continue
        visited.add(value)

        if value.kind == "call" and classifier.is_input_function(value.callee):
            logger.info(
                "{}- Operand '{}' influenced by external input: {} call in function {}",
                indent, value, value.callee, function.name,
            )
            graph.nodes[node]["input"] = value.callee
            input_calls.append(value.callee)
            continue

        logger.info("{}- Operand '{}' is a computed value.", indent, value)
        for operand in reversed(value.operands):
            stack.append((operand, node, indent + "  "))

    return graph, input_calls
