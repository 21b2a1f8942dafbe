from .CFG_ir import CFGGraph_ir


class CFGDriver:
    def __init__(self, module, properties=None):
        self.module = module
        self.properties = properties or {}
        self.CFG_map = {}
        for function in module.functions:
            self.CFG_map[function.name] = CFGGraph_ir(function, self.properties)

    def graph(self, function_name):
        return self.CFG_map[function_name].graph

    def __getitem__(self, function_name):
        return self.CFG_map[function_name]
