import json
import logging
from typing import IO, Optional

import click
from tqdm import tqdm

from regfa.parser import RegexpParsingError
from regfa.thompson import compile_regexp
from regfa.utils import RegexFlag

FORMS = {
    "NFA": RegexFlag.NOFLAG,
    "DFA": RegexFlag.DETERMINIZE,
    "MIN": RegexFlag.MINIMIZE,
}


@click.command(name="regfa", help="Compile a regular expression into a finite automaton")
@click.argument("pattern", type=click.STRING)
@click.option(
    "--text", "-t", type=click.STRING, multiple=True, help="string to test for acceptance"
)
@click.option(
    "--input-file",
    type=click.File(),
    default=None,
    help="Input file with one string to test per line",
)
@click.option("--out", "-o", type=click.File("w"), default="-", help="Output file")
@click.option(
    "--form",
    "-f",
    type=click.Choice(list(FORMS)),
    default="MIN",
    show_default=True,
    help="Automaton to build: Thompson NFA, subset construction DFA or minimal DFA",
)
@click.option(
    "--show",
    "-s",
    is_flag=True,
    show_default=True,
    default=False,
    help="Print the automaton before the results",
)
@click.option(
    "--graph",
    "-G",
    "graph_directory",
    type=click.Path(file_okay=False),
    default=None,
    help="Render the automaton with graphviz into this directory",
)
@click.option(
    "--debug",
    "-g",
    is_flag=True,
    show_default=True,
    default=False,
    help="Turn on debug mode",
)
def entry(
    pattern: str,
    text: tuple[str, ...],
    input_file: Optional[IO],
    out: IO,
    form: str,
    show: bool,
    graph_directory: Optional[str],
    debug: bool,
):
    flags = FORMS[form]
    if debug:
        flags |= RegexFlag.DEBUG
        logging.basicConfig(level=logging.DEBUG)

    try:
        automaton = compile_regexp(pattern, flags)
    except RegexpParsingError as e:
        raise click.BadParameter(str(e), param_hint="PATTERN") from e

    texts = list(text)
    if input_file is not None:
        texts.extend(line.rstrip("\n") for line in input_file)

    if show:
        click.echo(str(automaton), file=out)
    if graph_directory is not None:
        automaton.graph().render(
            directory=graph_directory, filename=form.lower(), cleanup=True
        )

    results = {s: automaton.accepts(s) for s in tqdm(texts, disable=not debug)}
    click.echo(json.dumps(results, indent=4), file=out)


if __name__ == "__main__":
    entry()
