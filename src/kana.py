#!/usr/bin/env python3
"""
kana.py - Kana tables and the romaji→kana matcher
かなテーブルとローマ字→かなマッチャー

================================================================================
OVERVIEW / 概要
================================================================================

A kana table maps an input key sequence to either a literal transliteration
or a bound action:

    "ka"  → KanaOutput("か", "")         # emit か
    "kk"  → KanaOutput("っ", "k")        # emit っ and re-feed "k"
    " "   → BoundAction("henkan_first")  # run a named function

Tables are kept sorted by key (code-point order) so a prefix search is a
binary search:

    keys = ["k", "ka", "kk", "ky", "kya", ...]
               ↑ bisect_left("ky") lands here; "kya" follows it

MATCHING / マッチング
─────────────────────
match(table, pending) returns one of:

    PARTIAL_MATCH      pending is a strict prefix of a longer key: wait for more
    Match(out, n)      pending[:n] is the longest key that prefixes pending
    NO_MATCH           nothing applies

Keys are tried from the longest prefix down to a single character, the same
longest-first fallback the layout processor of this code base uses.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Optional

import jaconv

from errors import IllegalKanaResult, UnknownTable
import kana_rom
from state import MODE_HANKATAKANA, MODE_KATAKANA
import util

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KanaOutput:
    kana: str
    tail: str = ''


@dataclass(frozen=True)
class BoundAction:
    """Reference to a named function, optionally parameterized ("upper-a")."""
    name: str
    args: Optional[str] = None

    def __str__(self):
        return f'{self.name}-{self.args}' if self.args is not None else self.name


class NoMatch:
    def __repr__(self):
        return 'NO_MATCH'


class PartialMatch:
    def __repr__(self):
        return 'PARTIAL_MATCH'


NO_MATCH = NoMatch()
PARTIAL_MATCH = PartialMatch()


@dataclass(frozen=True)
class Match:
    output: object  # KanaOutput or BoundAction
    consumed: int


def parse_action(value):
    """Split "name-args" into a BoundAction."""
    name, sep, args = value.partition('-')
    return BoundAction(name, args if sep else None)


def as_kana_result(key, result, validate_action=None):
    """
    Normalize a raw table value.

    Args:
        key: The input key of the entry (for error messages)
        result: str (action name), list/tuple of str ([kana] or [kana, tail]),
                KanaOutput/BoundAction, or a falsy value (deletion)
        validate_action: Optional callable that raises UnknownFunction when
                         the action cannot be resolved

    Returns:
        KanaOutput, BoundAction or None (the entry is to be deleted)

    Raises:
        IllegalKanaResult: for values of any other shape
    """
    if isinstance(result, (KanaOutput, BoundAction)):
        action = result if isinstance(result, BoundAction) else None
    elif isinstance(result, str) and result:
        action = parse_action(result)
    elif isinstance(result, (list, tuple)) and len(result) >= 1 and all(isinstance(r, str) for r in result):
        return KanaOutput(result[0], result[1] if len(result) > 1 else '')
    elif not result:
        return None
    else:
        raise IllegalKanaResult(key, result)

    if action is None:
        return result
    if validate_action is not None:
        validate_action(action)
    return action


class KanaTable:
    """
    An immutable, key-sorted kana table.

    Build a modified copy with merged(); the original is never changed.
    """

    def __init__(self, entries=()):
        # entries: iterable of (key, KanaOutput | BoundAction | None), newest first
        seen = set()
        kept = []
        for key, output in entries:
            if key in seen:
                continue
            seen.add(key)
            if output is not None:
                kept.append((key, output))
        kept.sort(key=lambda e: e[0])
        self._entries = kept
        self._keys = [key for key, _ in kept]
        self._index = dict(kept)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __contains__(self, key):
        return key in self._index

    def get(self, key):
        return self._index.get(key)

    def keys(self):
        return list(self._keys)

    def merged(self, partial):
        """Return a new table with `partial` entries taking precedence over ours."""
        return KanaTable(list(partial) + self._entries)

    def has_longer_key(self, prefix):
        """True if some key strictly extends `prefix`."""
        i = bisect.bisect_left(self._keys, prefix)
        if i < len(self._keys) and self._keys[i] == prefix:
            i += 1
        return i < len(self._keys) and self._keys[i].startswith(prefix)

    def match(self, pending):
        if not pending:
            return NO_MATCH
        if self.has_longer_key(pending):
            return PARTIAL_MATCH
        for length in range(len(pending), 0, -1):
            output = self._index.get(pending[:length])
            if output is not None:
                return Match(output, length)
        return NO_MATCH

    def alternatives(self, prefix):
        """
        List every kana output still reachable from an ambiguous partial key.

        For prefix "k" this yields ("ka", か), ("ke", け), ("ki", き), ...
        in table order. Bound actions are left out.

        Args:
            prefix: The pending (unconverted) keystrokes

        Returns:
            list: (key, KanaOutput) tuples whose key starts with prefix
        """
        result = []
        i = bisect.bisect_left(self._keys, prefix)
        while i < len(self._entries) and self._keys[i].startswith(prefix):
            key, output = self._entries[i]
            if isinstance(output, KanaOutput):
                result.append((key, output))
            i += 1
        return result


def match(table, pending):
    """Resolve the longest matching prefix of `pending` against `table`."""
    return table.match(pending)


def convert_for_mode(mode, text):
    """Render hiragana `text` in the script of the input mode."""
    if mode == MODE_KATAKANA:
        return jaconv.hira2kata(text)
    if mode == MODE_HANKATAKANA:
        return jaconv.hira2hkata(text)
    return text


def _zen_table():
    entries = []
    for code in range(0x21, 0x7f):
        c = chr(code)
        entries.append((c, KanaOutput(jaconv.h2z(c, ascii=True, digit=True), '')))
    entries.append((' ', KanaOutput('　', '')))
    return entries


class KanaTableRegistry:
    """
    Named kana tables ("rom", "zen", and whatever the user registers).

    One registry is owned by each engine and passed to the contexts that use
    it, so nothing here is process-global.
    """

    def __init__(self, validate_action=None):
        self._validate_action = validate_action
        rom = [(key, as_kana_result(key, value, validate_action))
               for key, value in kana_rom.ROM_TABLE.items()]
        self._tables = {
            'rom': KanaTable(rom),
            'zen': KanaTable(_zen_table()),
        }

    def names(self):
        return list(self._tables)

    def get(self, name):
        table = self._tables.get(name)
        if table is None:
            raise UnknownTable(name)
        return table

    def inject(self, name, partial, create=False):
        """
        Merge (key, result) pairs into the table called `name`.

        New entries replace old ones with the same key and None results
        delete the key.

        Raises:
            UnknownTable: when the table does not exist and create is False
        """
        if name not in self._tables and not create:
            raise UnknownTable(name)
        base = self._tables.get(name, KanaTable())
        self._tables[name] = base.merged(partial)
        logger.debug(f'kana table {name}: {len(self._tables[name])} entries')

    def register(self, name, raw_table, create=False):
        """
        Register a raw table (dict of key → value) under `name`.

        Every value is validated before anything is merged, so a malformed
        entry leaves the existing table untouched.

        Raises:
            IllegalKanaResult, UnknownFunction, UnknownTable
        """
        if not isinstance(raw_table, dict):
            raise IllegalKanaResult(name, raw_table)
        logger.debug(f'new kana table: name: {name}, table: {raw_table}')
        partial = [(key, as_kana_result(key, value, self._validate_action))
                   for key, value in raw_table.items()]
        self.inject(name, partial, create)

    def load_files(self, payload):
        """
        Load "from,result" table files into the "rom" table.

        Args:
            payload: list of paths or [path, encoding] pairs

        Returns:
            int: number of entries read
        """
        partial = []
        for item in payload:
            path, encoding = (item[0], item[1]) if isinstance(item, (list, tuple)) else (item, None)
            path = util.expand_path(path)
            try:
                lines = util.read_lines_with_encoding(path, encoding)
            except OSError as e:
                logger.warning(f'Kana table file could not be read: {path} - {e}')
                continue
            if lines is None:
                continue
            for line in lines:
                if line.startswith('#') or line.strip() == '':
                    continue
                source, sep, result = line.partition(',')
                if not sep:
                    logger.warning(f'Skipping malformed kana table line in {path}: {line}')
                    continue
                partial.append((source, KanaOutput(result, '')))
            logger.info(f'Loaded kana table file: {path}')
        self.inject('rom', partial)
        return len(partial)
