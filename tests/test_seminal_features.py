import errno
import json
import os
import threading
import time

import pytest

from seminal.codeviews.InputSites.InputSites_ir import InputClassifier
from seminal.codeviews.SeminalFeatures.SeminalFeatures import (
    IO,
    POTENTIAL,
    AnalysisReport,
    FunctionReport,
    ReportEntry,
    VariableTable,
    analyze_function,
    classify,
)
from seminal.driver import SeminalDriver
from seminal.utils import postprocessor
from seminal.utils.postprocessor import ReportWriteError


INPUT_DEPENDENT_LOOP_REPORT = [
    {"function": "FunctionA", "variables": [{"name": "a", "line": 7, "type": "IO"}]},
    {
        "function": "FunctionB",
        "variables": [
            {"name": "j", "line": 23, "type": "Potential"},
            {"name": "b", "line": 20, "type": "Potential"},
        ],
    },
]


def sample_report(name="f"):
    return FunctionReport(name, [ReportEntry("x", 3, IO)])


def test_table_overwrite_keeps_position():
    table = VariableTable()
    table.upsert("i", 3)
    table.upsert("n", 4)
    table.upsert("i", 9)
    table.upsert("m", None)

    assert list(table) == ["i", "n", "m"]
    assert table["i"].line == 9
    assert table["m"].line == -1


def test_classify_prefers_io():
    table = VariableTable()
    table.upsert("x", 1)
    table.upsert("y", 2)

    report = classify("f", table, {"y"})

    assert report.to_json() == {
        "function": "f",
        "variables": [{"name": "y", "line": 2, "type": IO}],
    }


def test_classify_falls_back_to_potential():
    table = VariableTable()
    table.upsert("x", 1)
    table.upsert("y", 2)

    report = classify("f", table, set())

    assert [(entry.name, entry.type) for entry in report.variables] == [
        ("x", POTENTIAL), ("y", POTENTIAL),
    ]


def test_classify_empty_table():
    assert classify("f", VariableTable(), {"x"}) is None


def test_analyze_functions(load_module, loop_info):
    module = load_module("InputDependentLoopTest.ll")
    classifier = InputClassifier()
    reports = {}
    for function in module:
        report, _, _ = analyze_function(function, loop_info(function), classifier)
        reports[function.name] = report

    assert reports["main"] is None
    assert [report.to_json() for report in (reports["FunctionA"], reports["FunctionB"])] == \
        INPUT_DEPENDENT_LOOP_REPORT


def test_analyze_keeps_traced_table(load_module, loop_info):
    function = load_module("test_example2.ll").function("main")

    report, table, io_variables = analyze_function(function, loop_info(function), InputClassifier())

    assert list(table) == ["c", "fp"]
    assert io_variables == {"fp"}
    assert report.to_json() == {
        "function": "main",
        "variables": [{"name": "fp", "line": 13, "type": "IO"}],
    }


def test_analysis_logging(load_module, loop_info, log_messages):
    module = load_module("InputDependentLoopTest.ll")
    for function in module:
        analyze_function(function, loop_info(function), InputClassifier())

    assert "Analyzing function: FunctionA" in log_messages
    assert "  Key variable (IO): a (line 7)" in log_messages
    assert "  Potential variable: j (line 23)" in log_messages
    assert "No influential variables found in main" in log_messages


@pytest.mark.parametrize(
    "name, expected",
    [
        ("InputDependentLoopTest.ll", INPUT_DEPENDENT_LOOP_REPORT),
        (
            "test_example2.ll",
            [{"function": "main", "variables": [{"name": "fp", "line": 13, "type": "IO"}]}],
        ),
        (
            "function_pointer_test.ll",
            [{"function": "main", "variables": [{"name": "x", "line": 15, "type": "IO"}]}],
        ),
    ],
)
def test_driver_writes_report(data_dir, tmp_path, name, expected):
    output = tmp_path / "features.json"

    driver = SeminalDriver("ll", (data_dir / name).read_text(), str(output), filename=name)

    assert driver.get_report().flushed
    assert driver.document() == expected
    assert json.loads(output.read_text()) == expected


def test_driver_without_output(data_dir):
    driver = SeminalDriver("ll", (data_dir / "InputDependentLoopTest.ll").read_text())

    assert not driver.report.flushed
    assert driver.document() == INPUT_DEPENDENT_LOOP_REPORT


def test_report_flush(tmp_path):
    output = tmp_path / "report.json"
    report = AnalysisReport(str(output))
    report.add(sample_report("f"))
    report.add(None)
    report.add(sample_report("g"))

    document = report.flush()

    assert len(report) == 2
    assert [entry["function"] for entry in document] == ["f", "g"]
    assert json.loads(output.read_text()) == document


def test_report_flush_twice(tmp_path):
    report = AnalysisReport(str(tmp_path / "report.json"))
    report.flush()

    with pytest.raises(RuntimeError):
        report.flush()
    with pytest.raises(RuntimeError):
        report.add(sample_report())


def test_report_without_destination():
    with pytest.raises(ValueError):
        AnalysisReport().flush()


def test_empty_report_is_an_empty_list(tmp_path):
    output = tmp_path / "report.json"
    with AnalysisReport(str(output)):
        pass

    assert json.loads(output.read_text()) == []


def test_context_manager_skips_flush_on_error(tmp_path):
    output = tmp_path / "report.json"

    with pytest.raises(KeyError):
        with AnalysisReport(str(output)) as report:
            report.add(sample_report())
            raise KeyError("boom")

    assert not output.exists()
    assert not report.flushed


def test_unwritable_destination(tmp_path):
    report = AnalysisReport(str(tmp_path / "missing" / "report.json"))
    report.add(sample_report())

    with pytest.raises(ReportWriteError) as excinfo:
        report.flush()
    assert isinstance(excinfo.value, OSError)
    assert not report.flushed


def test_failed_write_leaves_destination_untouched(tmp_path, monkeypatch):
    output = tmp_path / "report.json"
    output.write_text("previous")

    def failing_replace(src, dst):
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(postprocessor.os, "replace", failing_replace)
    report = AnalysisReport(str(output))
    report.add(sample_report())

    with pytest.raises(ReportWriteError):
        report.flush()
    assert output.read_text() == "previous"
    assert os.listdir(tmp_path) == ["report.json"]


def test_concurrent_flush_writes_once(tmp_path, monkeypatch):
    output = tmp_path / "report.json"
    report = AnalysisReport(str(output))
    report.add(sample_report())
    writes = []
    errors = []
    write_json_atomic = postprocessor.write_json_atomic

    def slow_write(document, filename):
        writes.append(filename)
        time.sleep(0.05)
        return write_json_atomic(document, filename)

    def flush():
        try:
            report.flush()
        except RuntimeError as e:
            errors.append(e)

    monkeypatch.setattr(postprocessor, "write_json_atomic", slow_write)
    threads = [threading.Thread(target=flush) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert writes == [str(output)]
    assert len(errors) == 1
    assert report.flushed
    assert json.loads(output.read_text()) == [sample_report().to_json()]
