from .CFG import CFGGraph


class CFGGraph_ir(CFGGraph):
    """Block-level control flow graph of one IR function"""

    def __init__(self, function, properties=None):
        super().__init__("ll", properties)
        self.function = function
        self.entry = function.entry.label if function.entry is not None else None
        self.CFG_node_list, self.CFG_edge_list = self.CFG_ir()
        self.graph = self.to_networkx(self.CFG_node_list, self.CFG_edge_list)

    def CFG_ir(self):
        for block in self.function.blocks:
            self.add_node(
                block.label,
                label=block.label,
                size=len(block.instructions),
                entry=block.label == self.entry,
            )

        for block in self.function.blocks:
            terminator = block.terminator
            if terminator is None:
                continue
            if terminator.is_conditional:
                true_target, false_target = terminator.targets
                self.add_edge(block.label, true_target, "pos_next")
                self.add_edge(block.label, false_target, "neg_next")
                continue
            for target in terminator.targets:
                edge_type = "switch_next" if terminator.opcode == "switch" else "next"
                self.add_edge(block.label, target, edge_type)

        return self.CFG_node_list, self.CFG_edge_list
