from pathlib import Path

import pytest
from loguru import logger

from seminal.ir_parser.llvm_parser import LLVMParser
from seminal.passes import FunctionAnalysisManager

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def parse_ir():
    def _parse(text, source_name="snippet.ll"):
        return LLVMParser(text, source_name).parse()

    return _parse


@pytest.fixture
def load_module(parse_ir):
    def _load(name):
        return parse_ir((DATA_DIR / name).read_text(), name)

    return _load


@pytest.fixture
def loop_info():
    fam = FunctionAnalysisManager()
    return fam.loop_info


@pytest.fixture
def log_messages():
    """Messages loguru emits while the test runs"""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="TRACE")
    yield messages
    logger.remove(handler_id)
