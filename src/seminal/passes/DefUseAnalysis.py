import os

from loguru import logger

from .pass_manager import PreservedAnalyses, register_pass
from ..codeviews.DefUse.DefUse_ir import def_use_chain
from ..codeviews.InputSites.InputSites_ir import InputClassifier
from ..utils import postprocessor
from ..utils.postprocessor import ReportWriteError


@register_pass("def-use-analysis")
class DefUseAnalysisPass:
    """
    Logs the def-use chain behind every conditional branch and, when a
    `graph_output` prefix is configured, writes each chain as node-link
    JSON and DOT.
    """

    def __init__(self, report=None, properties=None):
        self.properties = properties or {}
        self.classifier = InputClassifier.from_properties(self.properties)
        self.graphs = {}

    def run(self, function, fam):
        self.analyze(function)
        return PreservedAnalyses.all()

    def analyze(self, function):
        logger.info("Analyzing function: {}", function.name)
        chains = []
        for instruction in function.instructions():
            if instruction.kind != "branch" or not instruction.is_conditional:
                continue
            logger.info("Branch Instruction: {}", instruction.text)
            graph, input_calls = def_use_chain(instruction.condition, function, self.classifier)
            graph.graph["function"] = function.name
            graph.graph["branch"] = instruction.text
            graph.graph["input_calls"] = input_calls
            chains.append(graph)

        self.graphs[function.name] = chains
        prefix = self.properties.get("graph_output")
        if prefix:
            self.write(function.name, chains, prefix)
        return chains

    @staticmethod
    def write(function_name, chains, prefix):
        try:
            directory = os.path.dirname(prefix)
            if directory:
                os.makedirs(directory, exist_ok=True)
            for position, graph in enumerate(chains):
                stem = f"{prefix}{function_name}_{position}"
                postprocessor.write_networkx_to_json(graph, stem + ".json")
                postprocessor.write_to_dot(graph, stem + ".dot")
        except OSError as e:
            raise ReportWriteError(e.errno, f"cannot write def-use graphs to {prefix}: {e.strerror or e}") from e
