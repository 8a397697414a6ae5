#!/usr/bin/env python3
"""
state.py - Input states of a conversion session (入力状態)

Exactly one of three states is active per context:

    DirectState       keystrokes are converted to kana and committed at once
    ComposingState    ▽ a headword (見出し) is being typed, maybe with okuri
    ConvertingState   ▼ a dictionary lookup produced candidates

The states are frozen dataclasses. Transitions are plain functions that
return a new state; nothing is shared between variants.

    Direct ──henkan_point──► Composing ──henkan_first──► Converting
      ▲                         │  ▲                        │
      └────────cancel───────────┘  └────────cancel──────────┘
      ▲                                                     │
      └──────────────────────kakutei────────────────────────┘
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from util import OKURI_ARI, OKURI_NASI

MODE_HIRAGANA = 'hiragana'
MODE_KATAKANA = 'katakana'
MODE_HANKATAKANA = 'hankaku-katakana'
MODE_LATIN = 'latin'
MODE_ZENKAKU = 'wide-latin'

INPUT_MODES = (MODE_HIRAGANA, MODE_KATAKANA, MODE_HANKATAKANA, MODE_LATIN, MODE_ZENKAKU)

AFFIX_PREFIX = 'prefix'
AFFIX_SUFFIX = 'suffix'


@dataclass(frozen=True)
class DirectState:
    mode: str = MODE_HIRAGANA
    pending: str = ''  # romaji not yet resolved to kana

    type = 'input'


@dataclass(frozen=True)
class ComposingState:
    mode: str = MODE_HIRAGANA
    feed: str = ''                     # headword kana (always hiragana)
    pending: str = ''
    okuri_key: str = ''                # first romaji letter of the okuri, e.g. "k" for く
    okuri_feed: Optional[str] = None   # None until okuri is marked
    abbrev: bool = False

    type = 'input'

    @property
    def okuri_started(self):
        return self.okuri_feed is not None


@dataclass(frozen=True)
class ConvertingState:
    mode: str
    feed: str                    # headword without the okuri key
    word: str                    # dictionary key, e.g. "かk"
    okuri_key: str = ''
    okuri_tail: str = ''         # okuri kana appended to the committed candidate
    candidates: Tuple[str, ...] = field(default_factory=tuple)
    index: int = -1
    affix: Optional[str] = None
    abbrev: bool = False

    type = 'henkan'

    @property
    def okuri_class(self):
        return OKURI_ARI if self.okuri_key else OKURI_NASI

    @property
    def candidate(self):
        # a short last page is indexed past the end of the list
        if self.index >= 0 and self.candidates:
            return self.candidates[min(self.index, len(self.candidates) - 1)]
        return None


def start_composing(state, abbrev=False):
    """Direct → Composing, keeping the input mode."""
    return ComposingState(mode=state.mode, abbrev=abbrev)


def start_okuri(state, key):
    """Mark the start of the okuri (送り仮名) inside a composing headword."""
    return replace(state, okuri_key=key, okuri_feed='')


def okuri_class_of(state):
    return OKURI_ARI if state.okuri_started else OKURI_NASI


def lookup_word(state):
    """The dictionary headword for a composing state: feed (+ okuri key)."""
    if state.okuri_started:
        return state.feed + state.okuri_key
    return state.feed


def affix_of(word):
    """Words like "ちょう>" are prefixes and ">てき" are suffixes."""
    if len(word) > 1 and word.endswith('>'):
        return AFFIX_PREFIX
    if len(word) > 1 and word.startswith('>'):
        return AFFIX_SUFFIX
    return None


def start_converting(state, candidates):
    """Composing → Converting with index -1 (nothing selected yet)."""
    word = lookup_word(state)
    return ConvertingState(
        mode=state.mode,
        feed=state.feed,
        word=word,
        okuri_key=state.okuri_key if state.okuri_started else '',
        okuri_tail=state.okuri_feed or '',
        candidates=tuple(candidates),
        index=-1,
        affix=affix_of(word),
        abbrev=state.abbrev,
    )


def with_index(state, index):
    return replace(state, index=index)


def with_candidates(state, candidates, index):
    return replace(state, candidates=tuple(candidates), index=index)


def back_to_composing(state):
    """Converting → Composing, restoring the headword and okuri."""
    if state.okuri_key:
        return ComposingState(mode=state.mode, feed=state.feed, okuri_key=state.okuri_key,
                              okuri_feed=state.okuri_tail, abbrev=state.abbrev)
    return ComposingState(mode=state.mode, feed=state.feed, abbrev=state.abbrev)


def reset(state, mode=None):
    """Any state → a fresh Direct state."""
    return DirectState(mode=mode or state.mode)


def drop_okuri(state):
    """Forget an okuri marker that never received a key."""
    return replace(state, okuri_key='', okuri_feed=None)
