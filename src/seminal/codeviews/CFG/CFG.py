import networkx as nx
from loguru import logger


class CFGGraph:
    def __init__(self, src_language, properties=None):
        self.src_language = src_language
        self.properties = properties or {}
        self.CFG_node_list = []
        self.CFG_edge_list = []

    def add_node(self, node_id, **attributes):
        self.CFG_node_list.append((node_id, attributes))

    def add_edge(self, src, dest, edge_type, additional_data=None):
        """Add an edge to the CFG edge list with validation"""
        if src is None or dest is None:
            logger.error(f"Attempting to add edge with None: {src} -> {dest}")
            return

        if additional_data:
            self.CFG_edge_list.append((src, dest, edge_type, additional_data))
        else:
            self.CFG_edge_list.append((src, dest, edge_type))

    def to_networkx(self, CFG_node_list, CFG_edge_list):
        G = nx.DiGraph()
        for node_id, attributes in CFG_node_list:
            G.add_node(node_id, **attributes)
        for edge in CFG_edge_list:
            src, dest, edge_type = edge[:3]
            data = dict(edge[3]) if len(edge) > 3 else {}
            if dest not in G:
                logger.warning("Edge {} -> {} targets an unknown block", src, dest)
                continue
            G.add_edge(src, dest, label=edge_type, **data)
        return G
