#!/usr/bin/env python3
# errors.py - Exception types shared by the conversion engine


class SkkError(Exception):
    """Base class for all engine errors."""


class UnknownTable(SkkError):
    """A kana table name could not be resolved."""

    def __init__(self, name):
        super().__init__(f'table {name} is not found.')
        self.name = name


class UnknownState(SkkError):
    """A key map was requested for a state that does not exist."""

    def __init__(self, name):
        super().__init__(f'unknown state: {name}')
        self.name = name


class UnknownFunction(SkkError):
    """A bound action names a function that is not registered."""

    def __init__(self, name):
        super().__init__(f'function not found: {name}')
        self.name = name


class IllegalKanaResult(SkkError):
    """A kana table entry has a value that is neither kana nor an action."""

    def __init__(self, key, result):
        super().__init__(f'Illegal result: {key!r} -> {result!r}')
        self.key = key
        self.result = result


class ServerUnavailable(SkkError):
    """The SKK server could not be reached or the connection broke."""


class RegistrationFailure(SkkError):
    """The user dictionary could not be written back to its file."""


class Interrupted(SkkError):
    """The user interrupted an interactive read (candidate selection, word registration)."""
