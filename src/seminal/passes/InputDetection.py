from loguru import logger

from .pass_manager import PreservedAnalyses, register_pass
from ..codeviews.InputSites.InputSites_ir import InputClassifier


@register_pass("input-detection")
class InputDetectionPass:
    """Logs every call to an input function"""

    def __init__(self, report=None, properties=None):
        self.properties = properties or {}
        self.classifier = InputClassifier.from_properties(self.properties)
        self.detected = []

    def run(self, function, fam):
        self.detect(function)
        return PreservedAnalyses.all()

    def detect(self, function):
        logger.info("Analyzing function {}", function.name)
        sites = []
        for instruction in function.instructions():
            if instruction.kind == "call" and self.classifier.is_input_function(instruction.callee):
                logger.info(
                    "Detected {} call in function: {} (line {})",
                    instruction.callee, function.name, instruction.debug_line,
                )
                sites.append((function.name, instruction.callee, instruction.debug_line))
        self.detected.extend(sites)
        return sites
