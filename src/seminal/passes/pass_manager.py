from loguru import logger

from ..codeviews.CFG.CFG_driver import CFGDriver
from ..codeviews.CFG.CFG_ir import CFGGraph_ir
from ..codeviews.CFG.LoopInfo import LoopInfo


class PreservedAnalyses:
    """What a pass left valid. Every pass in this package is read-only."""

    def __init__(self, preserve_all=False):
        self.preserve_all = preserve_all

    def __repr__(self):
        return "PreservedAnalyses.all()" if self.preserve_all else "PreservedAnalyses.none()"

    @classmethod
    def all(cls):
        return cls(True)

    @classmethod
    def none(cls):
        return cls(False)

    def are_all_preserved(self):
        return self.preserve_all


class FunctionAnalysisManager:
    """Computes per-function CFG and loop results on demand and caches them"""

    def __init__(self, properties=None):
        self.properties = properties or {}
        self._cfg = {}
        self._loops = {}

    def cfg(self, function):
        if function.name not in self._cfg:
            if function.module is None:
                self._cfg[function.name] = CFGGraph_ir(function, self.properties)
            else:
                # one driver run fills every function of the module still missing a graph
                driver = CFGDriver(function.module, self.properties)
                for name, cfg in driver.CFG_map.items():
                    self._cfg.setdefault(name, cfg)
        return self._cfg[function.name]

    def loop_info(self, function):
        if function.name not in self._loops:
            self._loops[function.name] = LoopInfo(function, self.cfg(function).graph)
        return self._loops[function.name]

    def invalidate(self, function, preserved):
        if preserved.are_all_preserved():
            return
        self._cfg.pop(function.name, None)
        self._loops.pop(function.name, None)


PASS_REGISTRY = {}


def register_pass(pipeline_name):
    def decorator(cls):
        PASS_REGISTRY[pipeline_name] = cls
        cls.pipeline_name = pipeline_name
        return cls
    return decorator


def parse_pipeline(pipeline):
    """`"def-use-analysis,seminal-input-features"` -> list of pass classes"""
    names = [name.strip() for name in pipeline.split(",") if name.strip()]
    if not names:
        raise ValueError("empty pass pipeline")
    passes = []
    for name in names:
        if name not in PASS_REGISTRY:
            raise ValueError(
                f"Unknown pass '{name}', expected one of: {', '.join(sorted(PASS_REGISTRY))}"
            )
        passes.append(PASS_REGISTRY[name])
    return passes


class FunctionPassManager:
    def __init__(self, passes=None):
        self.passes = list(passes or [])

    def add_pass(self, function_pass):
        self.passes.append(function_pass)

    def run(self, function, fam):
        preserved = PreservedAnalyses.all()
        for function_pass in self.passes:
            result = function_pass.run(function, fam)
            fam.invalidate(function, result)
            if not result.are_all_preserved():
                logger.warning("{} did not preserve analyses on {}", function_pass, function.name)
                preserved = result
        return preserved
