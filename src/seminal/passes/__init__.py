from .pass_manager import (
    PASS_REGISTRY,
    FunctionAnalysisManager,
    FunctionPassManager,
    PreservedAnalyses,
    parse_pipeline,
    register_pass,
)
from .DefUseAnalysis import DefUseAnalysisPass
from .InputDetection import InputDetectionPass
from .SeminalInputFeatures import SeminalInputFeaturesPass
