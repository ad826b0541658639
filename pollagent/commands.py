from __future__ import annotations

from dataclasses import dataclass

from .errors import CommandArgumentError


@dataclass(frozen=True)
class CommandLine:
    """A parsed instruction: verb, argument tokens and the raw text."""

    verb: str
    args: tuple[str, ...]
    remainder: str
    raw: str

    def arg(self, index: int, *, name: str) -> str:
        try:
            return self.args[index]
        except IndexError:
            raise CommandArgumentError(f"'{self.verb}' requires a {name} argument") from None

    def require_remainder(self, *, name: str) -> str:
        if not self.remainder:
            raise CommandArgumentError(f"'{self.verb}' requires a {name} argument")
        return self.remainder


def parse_command(text: str) -> CommandLine:
    """Split on the first run of spaces.

    The verb is lower-cased; ``args`` holds the remaining space separated
    tokens and ``remainder`` the trimmed rest of the line, which keeps paths
    containing spaces intact.
    """

    stripped = text.strip()
    head, _, rest = stripped.partition(" ")
    remainder = rest.strip()
    args = tuple(token for token in remainder.split(" ") if token)
    return CommandLine(verb=head.strip().lower(), args=args, remainder=remainder, raw=text)
