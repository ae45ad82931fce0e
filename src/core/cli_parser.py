from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Iterable, List, Optional, Sequence


class CLIError(Exception):
    """Raised when CLI arguments are invalid."""


class CLIHelp(Exception):
    """Raised to request help output."""


def matches(token: str, keywords: Sequence[str]) -> bool:
    token = token.lower()
    if not token:
        return False
    for word in keywords:
        word = word.lower()
        if word and word.startswith(token):
            return True
    return False


class ArgStream:
    """Utility for consuming command arguments sequentially."""

    def __init__(self, args: Iterable[str]):
        self._args = list(args)
        self._pos = 0

    def has_next(self) -> bool:
        return self._pos < len(self._args)

    def peek(self) -> str | None:
        if not self.has_next():
            return None
        return self._args[self._pos]

    def next(self) -> str:
        if not self.has_next():
            raise CLIError("command line is not complete")
        token = self._args[self._pos]
        self._pos += 1
        return token

    def find_and_remove(self, token: str) -> bool:
        """Find and remove a token from anywhere in the stream (order-independent)."""
        token_lower = token.lower()
        for i in range(len(self._args)):
            if self._args[i].lower() == token_lower:
                self._args.pop(i)
                if i < self._pos:
                    self._pos -= 1
                return True
        return False

    def find_and_remove_next(self, token: str) -> Optional[str]:
        """Find a token and return the next value, removing both (order-independent)."""
        token_lower = token.lower()
        for i in range(len(self._args)):
            if self._args[i].lower() == token_lower:
                self._args.pop(i)
                if i < self._pos:
                    self._pos -= 1
                if i < len(self._args):
                    value = self._args.pop(i)
                    if i < self._pos:
                        self._pos -= 1
                    return value
                raise CLIError(f"{token} requires a value")
        return None


@dataclass
class CommandSpec:
    name: str
    help_text: Optional[str] = None


def parse_option(stream: ArgStream, name: str) -> Optional[str]:
    """Parse an option with value from anywhere in the stream."""
    return stream.find_and_remove_next(name)


def parse_int_option(stream: ArgStream, name: str, default: Optional[int] = None) -> Optional[int]:
    """Parse a positive integer option from anywhere in the stream."""
    value = stream.find_and_remove_next(name)
    if value is None:
        return default
    try:
        number = int(value)
    except ValueError:
        raise CLIError(f"invalid integer value for {name}: {value}")
    if number < 1:
        raise CLIError(f"{name} must be positive: {value}")
    return number


def parse_choice_option(stream: ArgStream, name: str, choices: Sequence[str], default: Optional[str] = None) -> Optional[str]:
    """Parse a choice option from anywhere in the stream."""
    value = stream.find_and_remove_next(name)
    if value is None:
        return default
    value_lower = value.lower()
    for choice in choices:
        if matches(value_lower, (choice,)):
            return choice
    raise CLIError(f"invalid choice for {name}: {value} (choices: {', '.join(choices)})")


class CommandParser:
    """
    Parses ip-style action lists with prefix matching.

    finchat embed upsert lang en -> actions ['embed', 'upsert'], lang 'en'
    """

    def __init__(self, commands: Sequence[CommandSpec], languages: Sequence[str] = ("en", "he")) -> None:
        self._commands = list(commands)
        self._languages = list(languages)

    def parse(self, argv: Iterable[str]) -> tuple[List[str], SimpleNamespace]:
        args = list(argv)

        if not args or args[0] in ("-h", "--help", "help"):
            raise CLIHelp()

        stream = ArgStream(args)
        if stream.find_and_remove("-h") or stream.find_and_remove("--help"):
            raise CLIHelp()

        options = SimpleNamespace(
            log_level=parse_option(stream, "-V"),
            lang=parse_choice_option(stream, "lang", self._languages),
            top_k=parse_int_option(stream, "top-k"),
            batch_size=parse_int_option(stream, "batch-size"),
            env_file=parse_option(stream, "env"),
        )

        actions = []
        while stream.has_next():
            actions.append(self._match_command(stream.next()).name)
        if not actions:
            raise CLIError("no action specified")
        return actions, options

    def parse_actions(self, text: str) -> List[str]:
        """
        Space-separated actions as typed at the interactive prompt.

        Unknown tokens are kept as typed so the caller can run the actions
        before them and stop there.
        """
        tokens = text.split()
        if not tokens:
            raise CLIError("no action specified")
        actions = []
        for token in tokens:
            try:
                actions.append(self._match_command(token).name)
            except CLIError:
                actions.append(token)
        return actions

    def _match_command(self, token: str) -> CommandSpec:
        for spec in self._commands:
            if matches(token, (spec.name,)):
                return spec
        raise CLIError(f"unknown action: {token}")

    def get_help(self) -> str:
        lines = ["fin-chat - embed chat transcripts and search them by meaning", ""]
        lines.append("Usage: finchat <action> [<action> ...] [lang <en|he>] [top-k <n>] "
                     "[batch-size <n>] [env <file>] [-V <level>]")
        lines.append("")
        lines.append("Actions (run in the order given):")
        for spec in self._commands:
            lines.append(f"  {spec.name:<8} {spec.help_text or ''}".rstrip())
        lines.append("")
        lines.append("Without arguments the action and language are asked for interactively.")
        return "\n".join(lines)
