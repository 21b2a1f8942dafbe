import networkx as nx
from loguru import logger


class Loop:
    """A natural loop: a header block plus every block that reaches a back edge into it"""

    def __init__(self, function, header, blocks, latches):
        self.function = function
        self.header_label = header
        self.blocks = set(blocks)
        self.latches = list(latches)
        self.parent = None
        self.children = []

    def __repr__(self):
        return f"Loop(header={self.header_label}, depth={self.depth})"

    def __contains__(self, label):
        return label in self.blocks

    @property
    def header(self):
        return self.function.block(self.header_label)

    @property
    def depth(self):
        depth = 1
        loop = self.parent
        while loop is not None:
            depth += 1
            loop = loop.parent
        return depth


class LoopInfo:
    """
    Natural loops of one function, found from back edges in the dominator tree.

    Args:
        function: the IR function
        cfg_graph: networkx block graph built by CFGGraph_ir
    """

    def __init__(self, function, cfg_graph):
        self.function = function
        self.graph = cfg_graph
        self.loops = []
        if function.entry is not None:
            self.loops = self.find_loops(function.entry.label)

    def __iter__(self):
        return iter(self.loops)

    def __len__(self):
        return len(self.loops)

    def top_level(self):
        return [loop for loop in self.loops if loop.parent is None]

    def loop_for(self, label):
        """Innermost loop containing a block, or None"""
        innermost = None
        for loop in self.loops:
            if label in loop and (innermost is None or loop.depth > innermost.depth):
                innermost = loop
        return innermost

    def find_loops(self, entry):
        reachable = nx.descendants(self.graph, entry) | {entry}
        graph = self.graph.subgraph(reachable)
        idom = nx.immediate_dominators(graph, entry)

        def dominates(dominator, node):
            while True:
                if node == dominator:
                    return True
                parent = idom.get(node)
                if parent is None or parent == node:
                    return False
                node = parent

        latches_by_header = {}
        for source, target in graph.edges():
            if dominates(target, source):
                latches_by_header.setdefault(target, []).append(source)

        loops = []
        for header, latches in latches_by_header.items():
            body = {header}
            stack = list(latches)
            while stack:
                node = stack.pop()
                if node in body:
                    continue
                body.add(node)
                stack.extend(graph.predecessors(node))
            loops.append(Loop(self.function, header, body, latches))

        for loop in loops:
            enclosing = [
                other for other in loops
                if other is not loop and loop.header_label in other.blocks
                and loop.blocks <= other.blocks
            ]
            if enclosing:
                loop.parent = min(enclosing, key=lambda other: len(other.blocks))
                loop.parent.children.append(loop)

        order = {block.label: position for position, block in enumerate(self.function.blocks)}
        loops.sort(key=lambda loop: (loop.depth, order.get(loop.header_label, 0)))
        for loop in loops:
            logger.debug(
                "Loop in {}: header {} depth {} ({} blocks)",
                self.function.name, loop.header_label, loop.depth, len(loop.blocks),
            )
        return loops
