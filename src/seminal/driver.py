import copy
import time

from loguru import logger

from .codeviews.SeminalFeatures.SeminalFeatures import AnalysisReport
from .codeviews.InputSites.InputSites_ir import DEFAULT_HANDLE_FUNCTIONS, DEFAULT_INPUT_FUNCTIONS
from .ir_parser.parser_driver import DEFAULT_CLANG_FLAGS, ParserDriver
from .passes import FunctionAnalysisManager, FunctionPassManager, parse_pipeline

DEFAULT_PIPELINE = "seminal-input-features"

default_properties = {
    "input_functions": list(DEFAULT_INPUT_FUNCTIONS),
    "handle_functions": list(DEFAULT_HANDLE_FUNCTIONS),
    "clang": None,
    "clang_flags": list(DEFAULT_CLANG_FLAGS),
    "graph_output": None,
}


def merge_properties(properties=None):
    merged = copy.deepcopy(default_properties)
    for key, value in (properties or {}).items():
        if value is not None:
            merged[key] = value
    return merged


class SeminalDriver:
    def __init__(
            self,
            src_language="ll",
            src_code="",
            output_file=None,
            properties=None,
            passes=DEFAULT_PIPELINE,
            filename=None,
    ):
        self.src_language = src_language
        self.src_code = src_code
        self.properties = merge_properties(properties)
        self.report = AnalysisReport(output_file)

        start = time.time()
        self.parser = ParserDriver(src_language, src_code, self.properties, filename=filename)
        self.module = self.parser.module
        end = time.time()
        logger.debug("Parsed {} function(s) in {:.3f}s", len(self.module.functions), end - start)

        self.fam = FunctionAnalysisManager(self.properties)
        self.passes = [
            pass_class(self.report, self.properties) for pass_class in parse_pipeline(passes)
        ]
        self.fpm = FunctionPassManager(self.passes)

        with self.report:
            for function in self.module.functions:
                self.fpm.run(function, self.fam)
        logger.debug("Analysis finished in {:.3f}s", time.time() - end)

    def get_report(self):
        return self.report

    def document(self):
        return self.report.to_document()

    def pass_instance(self, pipeline_name):
        for function_pass in self.passes:
            if function_pass.pipeline_name == pipeline_name:
                return function_pass
        raise KeyError(pipeline_name)
