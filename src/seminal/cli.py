import sys
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

from .codeviews.InputSites.InputSites_ir import DEFAULT_HANDLE_FUNCTIONS, DEFAULT_INPUT_FUNCTIONS
from .driver import DEFAULT_PIPELINE, SeminalDriver
from .ir_parser.llvm_parser import IRParseError
from .ir_parser.parser_driver import CompilationError
from .passes import PASS_REGISTRY
from .utils.postprocessor import ReportWriteError

app = typer.Typer(add_completion=False, help="Find loop-controlling variables fed by program input.")

language_by_suffix = {".c": "c", ".ll": "ll"}


def configure_logging(verbose):
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format="{message}")


def detect_language(path, language):
    if language != "auto":
        return language
    suffix = path.suffix.lower()
    if suffix not in language_by_suffix:
        raise typer.BadParameter(
            f"cannot infer the language of {path.name}; pass --language c or --language ll"
        )
    return language_by_suffix[suffix]


@app.command()
def analyze(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    output: Path = typer.Option(Path("seminal_features.json"), "--output", "-o"),
    language: str = typer.Option("auto", "--language", "-l", help="auto, c or ll"),
    passes: str = typer.Option(DEFAULT_PIPELINE, "--passes", "-p", help="Comma separated pass names."),
    input_function: Optional[List[str]] = typer.Option(
        None, "--input-function", help="Extra substring naming an input function."
    ),
    handle_function: Optional[List[str]] = typer.Option(
        None, "--handle-function", help="Extra substring naming a handle-producing input function."
    ),
    clang: Optional[str] = typer.Option(None, "--clang", envvar="SEMINAL_CLANG"),
    graph_output: Optional[str] = typer.Option(
        None, "--graph-output", help="Path prefix for def-use chain graphs."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Analyze a C file or LLVM IR file and write the seminal input features report."""
    configure_logging(verbose)
    src_language = detect_language(source, language)
    properties = {
        "input_functions": list(DEFAULT_INPUT_FUNCTIONS) + list(input_function or []),
        "handle_functions": list(DEFAULT_HANDLE_FUNCTIONS) + list(handle_function or []),
        "clang": clang,
        "graph_output": graph_output,
    }

    try:
        driver = SeminalDriver(
            src_language=src_language,
            src_code=source.read_text(),
            output_file=str(output),
            properties=properties,
            passes=passes,
            filename=source.name,
        )
    except CompilationError as e:
        logger.error("Compilation failed: {}\n{}", e, e.stderr)
        raise typer.Exit(code=1)
    except (IRParseError, ValueError) as e:
        logger.error("{}", e)
        raise typer.Exit(code=1)
    except ReportWriteError as e:
        logger.error("Failed to write output: {}", e)
        raise typer.Exit(code=2)

    typer.echo(f"{len(driver.report)} function report(s) written to {output}")


@app.command("passes")
def list_passes() -> None:
    """List the available pass names."""
    for name in sorted(PASS_REGISTRY):
        typer.echo(name)


def main():
    app()


if __name__ == "__main__":
    main()
