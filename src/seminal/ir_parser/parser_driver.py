import os
import shutil
import subprocess
import tempfile

from loguru import logger

from .llvm_parser import LLVMParser

DEFAULT_CLANG_FLAGS = ["-g", "-O0", "-S", "-emit-llvm", "-fno-discard-value-names"]


class CompilationError(RuntimeError):
    def __init__(self, message, stderr=""):
        super().__init__(message)
        self.stderr = stderr


def default_clang():
    return os.getenv("SEMINAL_CLANG", "clang")


def compile_to_ir(src_code, clang=None, flags=None, filename="input.c"):
    """
    Compile C source to textual LLVM IR with clang.

    Args:
        src_code: C source text
        clang: compiler executable (defaults to $SEMINAL_CLANG or `clang`)
        flags: flags replacing DEFAULT_CLANG_FLAGS
        filename: name the source is compiled under, so debug info points at it

    Returns:
        the IR text
    """
    clang = clang or default_clang()
    flags = list(flags) if flags is not None else list(DEFAULT_CLANG_FLAGS)
    if shutil.which(clang) is None:
        raise CompilationError(f"clang executable not found: {clang}")

    with tempfile.TemporaryDirectory(prefix="seminal") as work_dir:
        source_path = os.path.join(work_dir, os.path.basename(filename))
        ir_path = source_path.rsplit(".", 1)[0] + ".ll"
        with open(source_path, "w") as f:
            f.write(src_code)

        command = [clang, *flags, source_path, "-o", ir_path]
        logger.debug("Compiling: {}", " ".join(command))
        result = subprocess.run(command, capture_output=True, text=True, cwd=work_dir)
        if result.returncode != 0:
            raise CompilationError(
                f"{clang} exited with status {result.returncode}", stderr=result.stderr
            )
        with open(ir_path, "r") as f:
            return f.read()


class ParserDriver:
    def __init__(self, src_language, src_code, properties=None, filename=None):
        properties = properties or {}
        self.src_language = src_language
        self.src_code = src_code

        if src_language == "c":
            self.ir_code = compile_to_ir(
                src_code,
                clang=properties.get("clang"),
                flags=properties.get("clang_flags"),
                filename=filename or "input.c",
            )
        elif src_language == "ll":
            self.ir_code = src_code
        else:
            raise ValueError(f"Unsupported source language: {src_language}")

        self.parser = LLVMParser(self.ir_code, source_name=filename)
        self.module = self.parser.parse()
