import logging
import os
import shlex
import subprocess
import sys
import tempfile
import typing
from typing import Optional

import click
from click import File

from lamb.lib.ast import minimize
from lamb.lib.codegen import compile_to_string
from lamb.lib.parser import ParseError, parse
from lamb.lib.typechecker import InferenceError, infer_type

logger = logging.getLogger(__name__)


def env_get_split(key: str, default: Optional[typing.List[str]] = None) -> typing.List[str]:
    value = os.environ.get(key)
    if value:
        return shlex.split(value)
    if default:
        return default
    return []


def checked(program: str, action: typing.Callable[[str], str]) -> str:
    try:
        return action(program)
    except ParseError as e:
        click.echo(f"Parse error: {e}", err=True)
        sys.exit(1)
    except InferenceError as e:
        click.echo(f"Type error: {e}", err=True)
        sys.exit(1)


def report(program: str, action: typing.Callable[[str], str]) -> None:
    click.echo(checked(program, action))


def check_program(program: str) -> str:
    ast = parse(program)
    logger.debug("AST: %s", ast)
    return str(minimize(infer_type(ast)))


@click.group()
def main() -> None:
    """Parse, type check and compile lamb programs."""


@main.command(name="parse")
@click.argument("program-file", type=File(), default=sys.stdin)
@click.option("--debug", is_flag=True)
def parse_command(program_file: File, debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG)

    program = program_file.read()  # type: ignore [attr-defined]
    report(program, lambda source: str(parse(source)))


@main.command(name="check")
@click.argument("program-file", type=File(), default=sys.stdin)
@click.option("--debug", is_flag=True)
def check_command(program_file: File, debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG)

    program = program_file.read()  # type: ignore [attr-defined]
    report(program, check_program)


@main.command(name="apply")
@click.argument("program", type=str, required=True)
@click.option("--debug", is_flag=True)
def apply_command(program: str, debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG)

    report(program, check_program)


@main.command(name="compile")
@click.argument("program-file", type=File(), default=sys.stdin)
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None)
@click.option("--run", is_flag=True, help="Run the compiled program with $NODE.")
@click.option("--debug", is_flag=True)
def compile_command(program_file: File, output: Optional[str], run: bool, debug: bool) -> None:
    if debug:
        logging.basicConfig(level=logging.DEBUG)

    program = program_file.read()  # type: ignore [attr-defined]
    js_program = checked(program, compile_to_string)

    if output is None and not run:
        click.echo(js_program, nl=False)
        return
    if output is not None:
        write_program(output, js_program)
        if run:
            run_program(output)
        return
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "program.js")
        write_program(path, js_program)
        run_program(path)


def write_program(path: str, js_program: str) -> None:
    with open(path, "w") as f:
        f.write(js_program)


def run_program(path: str) -> None:
    node = env_get_split("NODE", ["node"])
    flags = env_get_split("NODEFLAGS")
    logger.debug("Running %s", [*node, *flags, path])
    try:
        subprocess.run([*node, *flags, path], check=True)
    except FileNotFoundError:
        click.echo(f"Run error: cannot find {node[0]}", err=True)
        sys.exit(1)
    except subprocess.CalledProcessError as e:
        click.echo(f"Run error: {node[0]} exited with status {e.returncode}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
