#!/usr/bin/env python3
# context.py - Per-session conversion context and pre-edit output

import logging

from dictionary import Library, LibraryLoader
from errors import Interrupted
from kana import KanaTableRegistry, convert_for_mode
import keymap
from pager import CandidatePager
from state import ComposingState, ConvertingState, DirectState, MODE_ZENKAKU
import state as st
import util

logger = logging.getLogger(__name__)


class HostEditor:
    """
    The editor a session is attached to.

    The default implementation has no UI at all: messages go to the log,
    prompts are declined and candidate lists are not shown. Editor
    integrations subclass it.
    """

    def echo(self, message):
        logger.info(message)

    def getchar(self, prompt):
        """
        Read one key for interactive candidate selection.

        Raises:
            Interrupted: when the user interrupts the read (always, here)
        """
        raise Interrupted('no interactive input available')

    def input(self, prompt):
        """Read a line of text (word registration). An empty string declines."""
        return ''

    def confirm(self, prompt):
        return False

    def show_candidates(self, labels):
        pass

    def close_candidates(self):
        pass

    def set_local_option(self, name, value):
        pass


class PreEdit:
    """
    Tracks what has been written into the editor buffer.

    output() returns the text that turns the previously reported pre-edit
    into `next_text`: committed text plus the new pre-edit, prefixed with one
    backspace per character of the old pre-edit when it cannot simply be
    extended.
    """

    def __init__(self):
        self.current = ''
        self.committed = ''

    def do_kakutei(self, text):
        self.committed += text

    def output(self, next_text):
        if self.committed == '' and next_text.startswith(self.current):
            result = next_text[len(self.current):]
        else:
            result = '\b' * len(self.current) + self.committed + next_text
        self.committed = ''
        self.current = next_text
        return result


class Context:
    """
    One input session: the current state, the pre-edit buffer and the
    collaborators the input functions need.

    Contexts share the kana tables, key maps and dictionary store they are
    given, but never their state.
    """

    def __init__(self, config=None, tables=None, library=None, host=None, keymaps=None):
        self.config = config if config is not None else util.get_default_config_data()
        self.keymaps = keymaps if keymaps is not None else keymap.KeyMaps()
        self.tables = tables if tables is not None else KanaTableRegistry(keymap.resolve_action)
        if library is None:
            library = LibraryLoader(Library)
        elif isinstance(library, Library):
            loaded = library
            library = LibraryLoader(lambda: loaded)
        self.library_loader = library
        self.host = host if host is not None else HostEditor()
        self.kana_table_name = self.config.get('kana_table', 'rom')
        self.pager = CandidatePager(
            threshold=self.config.get('show_candidates_count', 4),
            select_keys=self.config.get('select_candidate_keys', 'asdfjkl'),
            immediately_cancel=self.config.get('immediately_cancel', True),
        )
        self.state = DirectState()
        self.pre_edit = PreEdit()
        self.editor_mode = 'i'
        self.last_candidate = None
        self.enabled = False
        self.escaped = False

    @property
    def library(self):
        return self.library_loader.get()

    @property
    def mode(self):
        return self.state.mode

    def table(self):
        """The kana table for the current input mode."""
        if self.state.mode == MODE_ZENKAKU:
            return self.tables.get('zen')
        return self.tables.get(self.kana_table_name)

    def commit(self, text):
        self.pre_edit.do_kakutei(text)

    def handle_key(self, key):
        self.keymaps.handle(self, key)

    def reset_state(self, mode=None):
        self.state = st.reset(self.state, mode)

    def __str__(self):
        state = self.state
        if isinstance(state, DirectState):
            return state.pending
        if isinstance(state, ComposingState):
            feed = state.feed if state.abbrev else convert_for_mode(state.mode, state.feed)
            text = self.config['marker_henkan'] + feed
            if state.okuri_started:
                text += '*' + convert_for_mode(state.mode, state.okuri_feed)
            return text + state.pending
        if isinstance(state, ConvertingState):
            candidate = state.candidate
            if candidate is None:
                candidate = state.feed
            return (self.config['marker_henkan_select'] + util.strip_annotation(candidate)
                    + convert_for_mode(state.mode, state.okuri_tail))
        return ''
