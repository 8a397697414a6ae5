#!/usr/bin/env python3
"""
function.py - Input functions bound to keys and kana table actions
入力関数（キーやかなテーブルのアクションに割り当てる関数）

Every function takes (context, char): the session context and the raw key
that invoked it. They update context.state and write committed text through
context.commit(); nothing is returned.

Conversion functions (henkan_first, henkan_forward, ...) live in henkan.py.
"""

from dataclasses import replace
import logging

from kana import BoundAction, KanaOutput, NO_MATCH, PARTIAL_MATCH, convert_for_mode
import henkan
from state import (
    AFFIX_PREFIX, ComposingState, ConvertingState, DirectState,
    MODE_HANKATAKANA, MODE_HIRAGANA, MODE_KATAKANA, MODE_LATIN, MODE_ZENKAKU,
)
import state as st
import util

logger = logging.getLogger(__name__)


def _is_upper(char):
    return len(char) == 1 and char.isascii() and char.isupper()


# ─── Kana input ───────────────────────────────────────────────────────────────

def _emit(context, kana):
    """Send converted kana to wherever the current state collects it."""
    state = context.state
    if isinstance(state, ComposingState):
        if state.okuri_started:
            context.state = replace(state, okuri_feed=state.okuri_feed + kana)
        else:
            context.state = replace(state, feed=state.feed + kana)
    else:
        context.commit(convert_for_mode(state.mode, kana))


def _set_pending(context, pending):
    context.state = replace(context.state, pending=pending)


def _feed(context, table, pending):
    """
    Resolve `pending` keystrokes against `table` as far as possible.

    Kana are emitted one match at a time; the tail of a match (e.g. the "k"
    of "kk" → っ) is put back in front of the remaining keys. A bound action
    is run immediately and any keys after it are dispatched again.
    """
    while pending:
        result = table.match(pending)
        if result is PARTIAL_MATCH:
            break
        if result is NO_MATCH:
            if len(pending) > 1:
                logger.debug(f'no kana for "{pending}", retrying with "{pending[-1]}"')
                pending = pending[-1]
                continue
            _emit(context, pending)
            pending = ''
            break

        matched, rest = pending[:result.consumed], pending[result.consumed:]
        if isinstance(result.output, BoundAction):
            _set_pending(context, '')
            context.keymaps.resolve(result.output)(context, matched)
            for key in rest:
                context.handle_key(key)
            return
        pending = result.output.tail + rest
        _emit(context, result.output.kana)
    _set_pending(context, pending)


def kana_input(context, char):
    """
    Default input function: feed one key through the kana table.

    Uppercase letters mark a henkan point first (start of a headword, or the
    start of the okuri inside one), unless the table maps them itself.
    """
    state = context.state
    if isinstance(state, DirectState) and state.mode == MODE_LATIN:
        context.commit(char)
        return
    if isinstance(state, ComposingState) and state.abbrev:
        if char == ' ':
            henkan.henkan_first(context, char)
        else:
            context.state = replace(state, feed=state.feed + char)
        return

    table = context.table()
    if _is_upper(char) and char not in table:
        henkan_point(context, char)
        char = char.lower()

    state = context.state
    if (isinstance(state, ComposingState) and state.okuri_started and not state.okuri_feed
            and not state.pending and char.isalpha()):
        context.state = replace(state, okuri_key=char)

    _feed(context, table, context.state.pending + char)

    state = context.state
    if not isinstance(state, ComposingState) or state.pending:
        return
    if state.okuri_started:
        if state.okuri_feed and context.config['immediately_okuri_convert']:
            henkan.henkan_first(context, '')
    elif len(state.feed) > 1 and state.feed.endswith('>'):
        henkan.henkan_first(context, '')


def kakutei_feed(context, char=''):
    """Resolve left-over romaji as it stands (a lone "n" becomes ん) or drop it."""
    state = context.state
    if not isinstance(state, (DirectState, ComposingState)) or not state.pending:
        return
    output = context.table().get(state.pending)
    context.state = replace(state, pending='')
    if isinstance(output, KanaOutput):
        _emit(context, output.kana)


def henkan_point(context, char=''):
    """
    Mark a henkan point (▽).

    In direct input this starts a headword. Inside a non-empty headword it
    marks where the okuri begins. During conversion the current candidate
    is committed first and a new headword is started.
    """
    state = context.state
    if isinstance(state, ConvertingState):
        kakutei(context)
        state = context.state
    kakutei_feed(context)
    state = context.state
    if isinstance(state, DirectState):
        context.state = st.start_composing(state)
    elif state.feed and not state.okuri_started and not state.abbrev:
        context.state = st.start_okuri(state, '')


def delete_char(context, char=''):
    state = context.state
    if isinstance(state, DirectState):
        if state.pending:
            _set_pending(context, state.pending[:-1])
        else:
            context.commit('\b')
        return
    if not isinstance(state, ComposingState):
        return
    if state.pending:
        pending = state.pending[:-1]
        if state.okuri_started and not state.okuri_feed and not pending:
            # the okuri key came from the deleted romaji
            context.state = replace(state, pending='', okuri_key='')
        else:
            _set_pending(context, pending)
    elif state.okuri_started:
        if len(state.okuri_feed) > 1:
            context.state = replace(state, okuri_feed=state.okuri_feed[:-1])
        elif state.okuri_feed:
            context.state = replace(state, okuri_feed='', okuri_key='')
        else:
            context.state = st.drop_okuri(state)
    elif state.feed:
        context.state = replace(state, feed=state.feed[:-1])
    else:
        context.reset_state()


# ─── Commit and cancel ────────────────────────────────────────────────────────

def kakutei(context, char=''):
    """
    Commit (確定) whatever the state holds.

    Committing a conversion candidate registers it in the dictionary store,
    which moves it to the front of its headword for the next lookup.
    """
    state = context.state
    if isinstance(state, ConvertingState):
        candidate = state.candidate
        if candidate is None:
            context.commit(convert_for_mode(state.mode, state.feed + state.okuri_tail))
        else:
            context.commit(util.strip_annotation(candidate) + convert_for_mode(state.mode, state.okuri_tail))
            context.library.register(state.okuri_class, state.word, candidate)
            context.last_candidate = (state.okuri_class, state.word, candidate)
        context.host.close_candidates()
        if state.affix == AFFIX_PREFIX:
            context.state = ComposingState(mode=state.mode)
        else:
            context.reset_state()
        return

    kakutei_feed(context)
    state = context.state
    if isinstance(state, ComposingState):
        text = state.feed if state.abbrev else convert_for_mode(state.mode, state.feed)
        if state.okuri_started:
            text += convert_for_mode(state.mode, state.okuri_feed)
        context.commit(text)
        context.reset_state()


def newline(context, char=''):
    """Commit, then insert a newline unless egg-like newline swallows it."""
    composing = not isinstance(context.state, DirectState)
    kakutei(context)
    if not (context.config['egg_like_newline'] and composing):
        context.commit('\n')


def cancel(context, char=''):
    """
    Step back one stage.

    With immediately_cancel a conversion or headword is discarded at once.
    Without it a conversion goes back to its headword (▼ → ▽), and a
    headword first loses its pending romaji before being discarded.
    """
    state = context.state
    immediately = context.config['immediately_cancel']
    if isinstance(state, ConvertingState):
        context.host.close_candidates()
        context.state = st.reset(state) if immediately else st.back_to_composing(state)
    elif isinstance(state, ComposingState):
        if state.pending and not immediately:
            _set_pending(context, '')
        else:
            context.reset_state()
    else:
        _set_pending(context, '')


def purge_candidate(context, char=''):
    """Remove the current candidate from the user dictionary after confirmation."""
    state = context.state
    if not isinstance(state, ConvertingState) or state.candidate is None:
        return
    candidate = state.candidate
    if not context.host.confirm(f'Really purge? {state.word} /{candidate}/'):
        return
    context.library.purge(state.okuri_class, state.word, candidate)
    context.host.close_candidates()
    context.reset_state()


def disable(context, char=''):
    kakutei(context)
    context.host.set_local_option('iminsert', 0)
    context.reset_state(context.state.mode if context.config['keep_state'] else MODE_HIRAGANA)
    context.enabled = False


def escape(context, char=''):
    """Disable, and have the host leave insert mode."""
    disable(context)
    context.escaped = True


# ─── Modes ────────────────────────────────────────────────────────────────────

def _set_mode(context, mode):
    kakutei(context)
    context.reset_state(mode)
    logger.debug(f'input mode: {mode}')


def _commit_headword_as(context, mode):
    kakutei_feed(context)
    state = context.state
    context.commit(convert_for_mode(mode, state.feed + (state.okuri_feed or '')))
    context.reset_state()


def _toggle(context, mode):
    state = context.state
    target = MODE_HIRAGANA if state.mode == mode else mode
    if isinstance(state, ComposingState) and not state.abbrev:
        _commit_headword_as(context, target)
    else:
        _set_mode(context, target)


def hirakana(context, char=''):
    state = context.state
    if isinstance(state, ComposingState) and not state.abbrev:
        _commit_headword_as(context, MODE_HIRAGANA)
    else:
        _set_mode(context, MODE_HIRAGANA)


def katakana(context, char=''):
    _toggle(context, MODE_KATAKANA)


def hankatakana(context, char=''):
    _toggle(context, MODE_HANKATAKANA)


def latin(context, char=''):
    _set_mode(context, MODE_LATIN)


def zenkaku(context, char=''):
    _set_mode(context, MODE_ZENKAKU)


def abbrev(context, char=''):
    """Start a headword typed in latin letters (e.g. "/tex" → ▽tex)."""
    state = context.state
    if not isinstance(state, DirectState):
        return
    kakutei_feed(context)
    context.state = st.start_composing(context.state, abbrev=True)
