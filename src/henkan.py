#!/usr/bin/env python3
# henkan.py - Kana to Kanji conversion (変換) transitions

import logging

from errors import Interrupted
import function
from pager import INTERRUPT_CANCEL
from state import ConvertingState, DirectState
import state as st
import util

logger = logging.getLogger(__name__)


def henkan_first(context, char=''):
    """
    Start converting the headword being composed (▽ → ▼).

    Outside a headword the key is simply committed. An empty headword never
    starts a conversion.

    Args:
        context: The session context
        char: The key that triggered the conversion
    """
    if isinstance(context.state, ConvertingState):
        return
    function.kakutei_feed(context)
    state = context.state
    if isinstance(state, DirectState):
        context.commit(char)
        return

    if state.okuri_started and not state.okuri_key:
        state = st.drop_okuri(state)
        context.state = state
    if not state.feed:
        return

    word = st.lookup_word(state)
    candidates = context.library.lookup(st.okuri_class_of(state), word)
    logger.debug(f'henkan_first: "{word}" → {candidates}')
    context.state = st.start_converting(state, candidates)
    henkan_forward(context)


def henkan_forward(context, char=''):
    """
    Advance to the next candidate, or to the next page once past the
    inline candidates.

    Running past the last candidate looks the headword up once more and,
    if nothing new turned up, offers to register a new word. When the user
    declines, the selection stays where it was (or the headword is restored
    if nothing was selected yet).
    """
    state = context.state
    if not isinstance(state, ConvertingState):
        return
    pager = context.pager
    index = pager.forward(state.index)

    if pager.is_exhausted(state.candidates, index):
        candidates = context.library.lookup(state.okuri_class, state.word)
        if not pager.is_exhausted(candidates, index):
            state = st.with_candidates(state, candidates, state.index)
            context.state = state
        else:
            if register_word(context):
                return
            index = state.index
            if index == -1:
                context.state = st.back_to_composing(state)
                return

    context.state = st.with_index(state, index)
    if pager.is_paging(index):
        if context.config['use_popup'] and context.editor_mode == 'i':
            show_candidates(context)
        else:
            select_candidates(context)


def henkan_backward(context, char=''):
    """Go back one candidate (or one page); before the first one, back to ▽."""
    state = context.state
    if not isinstance(state, ConvertingState):
        return
    pager = context.pager
    index = pager.backward(state.index)
    if index < 0:
        context.host.close_candidates()
        context.state = st.back_to_composing(state)
        return
    context.state = st.with_index(state, index)
    if pager.is_paging(index):
        show_candidates(context)
    else:
        context.host.close_candidates()


def henkan_input(context, char):
    """
    Any other key during conversion.

    On a candidate page a select key picks the candidate it labels (keys
    past the end of the page are ignored). Any other key commits the
    current candidate and is then handled as normal input.
    """
    state = context.state
    pager = context.pager
    context.host.close_candidates()
    if pager.is_paging(state.index) and char and char in pager.select_keys:
        selected = pager.select(state.candidates, state.index, char)
        if selected is not None:
            context.state = st.with_index(state, selected)
            function.kakutei(context)
        return

    function.kakutei(context)
    context.handle_key(char)


def show_candidates(context):
    state = context.state
    labels = context.pager.labels(state.candidates, state.index, util.strip_annotation)
    context.host.show_candidates(labels)


def select_candidates(context):
    """
    Interactive candidate selection for hosts without a popup.

    Candidates after the inline ones are offered in blocks labelled with
    the select keys; space shows the next block and "x" the previous one.
    Going back before the first block returns to the last inline
    candidate.
    """
    pager = context.pager
    block_number = 0
    while block_number >= 0:
        state = context.state
        start, shown = pager.block(state.candidates, block_number)
        if not shown:
            if register_word(context):
                return
            block_number -= 1
            continue

        prompt = ' '.join(f'{key}: {util.strip_annotation(candidate)}' for key, candidate in shown)
        try:
            key = context.host.getchar(prompt)
        except Interrupted:
            if pager.on_interrupt() == INTERRUPT_CANCEL:
                context.reset_state()
                return
            break
        if isinstance(key, int):
            key = chr(key)

        if key == ' ':
            block_number += 1
        elif key == 'x':
            block_number -= 1
        elif key and key in pager.select_keys:
            position = pager.select_keys.index(key)
            if position < len(shown):
                context.state = st.with_index(state, start + position)
                function.kakutei(context)
                return
    context.state = st.with_index(context.state, pager.threshold - 1)


def register_word(context):
    """
    Ask the host for a new candidate for the current headword (辞書登録).

    The word becomes the only candidate and is committed, which also
    registers it in the user dictionary.

    Returns:
        bool: True if a word was registered and committed
    """
    state = context.state
    prompt = state.feed + (f'*{state.okuri_tail}' if state.okuri_key else '') + ': '
    try:
        word = context.host.input(prompt)
    except Interrupted:
        return False
    if not word:
        return False
    logger.info(f'register word: {state.word} → {word}')
    context.state = st.with_candidates(state, [word], 0)
    function.kakutei(context)
    return True


def upper(key):
    """
    Make an action that marks a henkan point and then inputs `key`, for
    binding shifted keys of layouts where they do not arrive in uppercase.
    """
    def run(context, char=''):
        function.henkan_point(context)
        context.handle_key(key)
    return run
