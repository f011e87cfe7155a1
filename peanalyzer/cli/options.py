"""Command line option parsing.

The grammar is small and fixed, so it is parsed by hand instead of with
argparse: flags may repeat (last value wins) and the input file is the single
bare token that closes the argument list.
"""
from typing import Dict, List, Sequence, Tuple

HELP = "help"
VERSION = "version"
OUTPUT = "output"
PICTURE = "picture"
ICONS = "icons"
INPUTFILE = "inputfile"

ACTION_KEYS = (HELP, VERSION, OUTPUT, PICTURE, ICONS, INPUTFILE)

_SWITCHES = {
    "-h": HELP, "--help": HELP,
    "-v": VERSION, "--version": VERSION,
}

_VALUE_FLAGS = {
    "-o": OUTPUT, "--output": OUTPUT,
    "-p": PICTURE, "--picture": PICTURE,
    "-i": ICONS, "--ico": ICONS,
}


class UsageError(ValueError):
    """An unknown option or a flag without its value."""

    def __init__(self, option: str):
        super().__init__(f"Unknown option {option}")
        self.option = option


def _is_flag(token: str) -> bool:
    return token in _SWITCHES or token in _VALUE_FLAGS


def _classify(tokens: Sequence[str]) -> Tuple[Dict[str, str], List[Tuple[int, str]]]:
    """First pass: resolve flags and collect bare tokens with their position."""
    actions: Dict[str, str] = {}
    bare: List[Tuple[int, str]] = []
    pos = 0
    while pos < len(tokens):
        token = tokens[pos]
        if token in _SWITCHES:
            actions[_SWITCHES[token]] = ""
            pos += 1
        elif token in _VALUE_FLAGS:
            if pos + 1 >= len(tokens) or _is_flag(tokens[pos + 1]):
                raise UsageError(token)
            actions[_VALUE_FLAGS[token]] = tokens[pos + 1]
            pos += 2
        elif token.startswith("-") and len(token) > 1:
            raise UsageError(token)
        else:
            bare.append((pos, token))
            pos += 1
    return actions, bare


def parse_options(tokens: Sequence[str]) -> Dict[str, str]:
    """Turn the raw argument list into an action set.

    Returns a dict keyed by the ``ACTION_KEYS`` constants. Switches map to an
    empty string, value flags to their value and ``INPUTFILE`` to the bare
    trailing token. Raises UsageError on anything else.
    """
    tokens = list(tokens)
    actions, bare = _classify(tokens)
    # Second pass: only one bare token is allowed, and it has to close the list.
    for pos, token in bare:
        if pos != len(tokens) - 1:
            raise UsageError(token)
    if bare:
        actions[INPUTFILE] = bare[-1][1]
    return actions
