import threading
from dataclasses import dataclass, field

from loguru import logger

from ..DefUse.DefUse_ir import trace_loops
from ..InputSites.InputSites_ir import scan_input_sites
from ...utils import postprocessor

IO = "IO"
POTENTIAL = "Potential"


@dataclass
class VariableRecord:
    name: str
    line: int = -1


class VariableTable(dict):
    """
    Variables seen while analysing one function, keyed by source name.

    Two declarations sharing a name collapse into one entry: the latest
    write wins (shadowed variables lose their line).
    """

    def upsert(self, name, line=-1):
        self[name] = VariableRecord(name, line if line is not None else -1)
        return self[name]


@dataclass
class ReportEntry:
    name: str
    line: int
    type: str

    def to_json(self):
        return {"name": self.name, "line": self.line, "type": self.type}


@dataclass
class FunctionReport:
    function: str
    variables: list = field(default_factory=list)

    def to_json(self):
        return {
            "function": self.function,
            "variables": [entry.to_json() for entry in self.variables],
        }


def classify(function_name, table, io_variables):
    """
    Turn a function's variable table into its report.

    When any variable is known to come from input only those are reported
    (as IO); otherwise every traced variable is reported as Potential.

    Returns:
        FunctionReport, or None when the table is empty
    """
    if not table:
        return None

    io_entries = [record for name, record in table.items() if name in io_variables]
    if io_entries:
        variables = [ReportEntry(record.name, record.line, IO) for record in io_entries]
    else:
        variables = [ReportEntry(record.name, record.line, POTENTIAL) for record in table.values()]
    return FunctionReport(function_name, variables)


def analyze_function(function, loop_info, classifier):
    """
    Seminal input features of one function.

    Loop conditions seed the def-use tracer, input calls are attributed
    independently, and the two results are reconciled by `classify`.

    Returns:
        (FunctionReport or None, VariableTable, set of IO variable names)
    """
    logger.info("Analyzing function: {}", function.name)
    table = VariableTable()
    io_variables = set()

    trace_loops(function, loop_info, table)
    scan_input_sites(function, classifier, table, io_variables)

    report = classify(function.name, table, io_variables)
    if report is None:
        logger.info("No influential variables found in {}", function.name)
        return None, table, io_variables

    for entry in report.variables:
        if entry.type == IO:
            logger.info("  Key variable (IO): {} (line {})", entry.name, entry.line)
        else:
            logger.info("  Potential variable: {} (line {})", entry.name, entry.line)
    return report, table, io_variables


class AnalysisReport:
    """
    Cross-function report, owned by whoever drives the analysis.

    Function reports are appended in processing order; the document is
    written once by `flush`. Used as a context manager, the flush happens
    on exit.
    """

    def __init__(self, output_file=None):
        self.output_file = output_file
        self.functions = []
        self.flushed = False
        self._lock = threading.Lock()

    def __len__(self):
        return len(self.functions)

    def __iter__(self):
        return iter(self.functions)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, tb):
        if exc_type is None and self.output_file and not self.flushed:
            self.flush()
        return False

    def add(self, function_report):
        if function_report is None:
            return
        with self._lock:
            if self.flushed:
                raise RuntimeError("report already flushed")
            self.functions.append(function_report)

    def to_document(self):
        with self._lock:
            return [report.to_json() for report in self.functions]

    def flush(self, output_file=None):
        output_file = output_file or self.output_file
        if output_file is None:
            raise ValueError("no output file for the analysis report")
        with self._lock:
            if self.flushed:
                raise RuntimeError("report already flushed")
            # built inline, the lock is not reentrant
            document = [report.to_json() for report in self.functions]
            postprocessor.write_json_atomic(document, output_file)
            self.flushed = True
        logger.info("Wrote {} function report(s) to {}", len(document), output_file)
        return document
