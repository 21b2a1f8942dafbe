import copy
import json
import os
import tempfile
from subprocess import check_call

import networkx as nx
from loguru import logger
from networkx.readwrite import json_graph

class ReportWriteError(OSError):
    pass

def write_json_atomic(document, filename):
    """
    Write `document` as JSON to `filename` through a temporary file in the
    same directory, so the destination either holds the whole document or
    is left untouched.
    """
    directory = os.path.dirname(os.path.abspath(filename))
    fd = None
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".seminal-", suffix=".json", dir=directory)
        with os.fdopen(fd, "w") as f:
            fd = None
            json.dump(document, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, filename)
        tmp_path = None
    except OSError as e:
        raise ReportWriteError(e.errno, f"cannot write report to {filename}: {e.strerror or e}") from e
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
    return filename


def write_networkx_to_json(graph, filename):
    """Convert a networkx graph to a json object and write it out"""
    graph_json = json_graph.node_link_data(graph)
    with open(filename, "w") as f:
        json.dump(graph_json, f)
    return graph_json


def write_to_dot(og_graph, filename, output_png=False):
    graph = copy.deepcopy(og_graph)
    for node in graph.nodes:
        if "label" in graph.nodes[node]:
            label = str(graph.nodes[node]["label"])
            label = label.replace("\\", "\\\\").replace('"', '\\"')
            # IR spellings such as %a and @g must be quoted for DOT
            graph.nodes[node]["label"] = f'"{label}"'
        if "input" in graph.nodes[node]:
            graph.nodes[node]["color"] = "red"

    nx.nx_pydot.write_dot(graph, filename)
    if output_png:
        check_call(["dot", "-Tpng", filename, "-o", filename.rsplit(".", 1)[0] + ".png"])
    logger.debug("Wrote {}", filename)
