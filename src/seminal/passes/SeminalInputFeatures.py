from .pass_manager import PreservedAnalyses, register_pass
from ..codeviews.InputSites.InputSites_ir import InputClassifier
from ..codeviews.SeminalFeatures.SeminalFeatures import analyze_function


@register_pass("seminal-input-features")
class SeminalInputFeaturesPass:
    """Appends each function's seminal input features to an AnalysisReport"""

    def __init__(self, report, properties=None):
        self.report = report
        self.properties = properties or {}
        self.classifier = InputClassifier.from_properties(self.properties)

    def run(self, function, fam):
        self.run_on_function(function, fam.loop_info(function))
        return PreservedAnalyses.all()

    def run_on_function(self, function, loop_info):
        function_report, _, _ = analyze_function(function, loop_info, self.classifier)
        self.report.add(function_report)
        return function_report
