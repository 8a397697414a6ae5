#!/usr/bin/env python3
"""
engine.py - The conversion engine as seen by a host editor

================================================================================
HOST INTERFACE / ホストとのインターフェース
================================================================================

    host → engine                         engine → host (HostEditor)
    ─────────────────────────────         ──────────────────────────────
    enable / disable / toggle             echo(message)
    handle(key, ambient) → text           getchar(prompt)      candidate keys
    reset()                               input(prompt)        word registration
    get_pre_edit / get_prefix / ...       confirm(prompt)      candidate purge
    complete_callback(kana, word)         show_candidates(labels) / close_candidates()
    register_kana_table / register_key_map set_local_option(name, value)

handle() returns the literal text to put into the buffer: backspaces for
the part of the previous pre-edit that is replaced, then committed text and
the new pre-edit. Two values are not plain text:

    " \\x08"  returned when nothing is output but the input mode changed,
             so the host redraws its mode indicator
    "\\x1b"   appended when the escape function ran; the host leaves
             insert mode

The ambient editor state passed to handle() is a dict:

    {
        "mode": "i",                  # editor mode ("i", "c", "R", ...)
        "prev_input": "...",          # buffer text before the cursor
        "complete_info": {"pum_visible": False, "selected": -1},
        "complete_type": "native",
    }

All keys are optional.
"""

import logging

from context import Context, HostEditor
from dictionary import LibraryLoader, build_library
from errors import SkkError
from kana import KanaTableRegistry
import keymap
from state import ComposingState, DirectState
import util
from util import OKURI_NASI

logger = logging.getLogger(__name__)

ESCAPE_KEY = '\x1b'
MODE_CHANGED = ' \x08'

# What <cr> sends to a completion menu to confirm the selected item
COMPLETE_CONFIRM_KEYS = {
    'native': '\x19',  # <c-y>
    'pum.vim': '<Cmd>call pum#map#confirm()<CR>',
    'cmp': "<Cmd>lua require('cmp').confirm({select = true})<CR>",
}


class SkkEngine:
    """
    One engine per host. Kana tables, key maps and the dictionary store are
    shared by the sessions it creates; conversion state is per session.

    Args:
        config: configuration dict; loaded with util.get_config_data() when None
        host: HostEditor implementation
        library_loader: LibraryLoader to use instead of one built from config
    """

    def __init__(self, config=None, host=None, library_loader=None):
        if config is None:
            config, _ = util.get_config_data()
        self.config = config
        if self.config.get('debug'):
            logging.getLogger().setLevel(logging.DEBUG)
        self.host = host if host is not None else HostEditor()
        self.keymaps = keymap.KeyMaps()
        self.tables = KanaTableRegistry(validate_action=keymap.resolve_action)
        kana_table_files = self.config.get('global_kana_table_files')
        if kana_table_files:
            count = self.tables.load_files(kana_table_files)
            logger.info(f'{count} kana table entries loaded from files')
        self.library_loader = library_loader or LibraryLoader(lambda: build_library(self.config))
        self._initialized = False
        self.context = self.new_context()

    def new_context(self):
        return Context(self.config, self.tables, self.library_loader, self.host, self.keymaps)

    def initialize(self):
        """Start loading dictionaries in the background (once)."""
        if self._initialized:
            return
        self.library_loader.start()
        self._initialized = True
        logger.info(f'{util.get_package_name()} {util.get_version()} initialized')

    def close(self):
        """Save the user dictionary and disconnect from the SKK server."""
        self.library_loader.close()

    # ─── Enable / disable ─────────────────────────────────────────────────────

    def _is_busy(self):
        state = self.context.state
        return not isinstance(state, DirectState) or state.pending != ''

    def enable(self, key=None, ambient=None):
        """
        Turn input conversion on.

        Returns:
            str: text to insert (only non-empty when an already enabled,
                 busy session handles `key` instead)
        """
        self.initialize()
        ambient = ambient or {}
        if ambient.get('mode') == 'R':
            self.host.echo('input conversion is not allowed in replace mode')
            return ''
        if self.context.enabled:
            if key is not None and self._is_busy():
                return self.handle(key, ambient)
            return ''
        if not self.config.get('keep_state'):
            self.context = self.new_context()
        self.context.enabled = True
        self.host.set_local_option('iminsert', 1)
        logger.debug('enabled')
        return ''

    def disable(self, key=None, ambient=None):
        self.initialize()
        if key is not None and ambient and self._is_busy():
            return self.handle(key, ambient)
        keymap.resolve_action('disable')(self.context, '')
        logger.debug('disabled')
        return self.context.pre_edit.output(str(self.context))

    def toggle(self, key=None, ambient=None):
        if self.context.enabled:
            return self.disable(key, ambient)
        return self.enable(key, ambient)

    def reset(self):
        """Drop the session (the host left insert mode)."""
        self.context = self.new_context()

    # ─── Key handling ─────────────────────────────────────────────────────────

    def _handle_complete_key(self, selected, complete_type, key):
        if keymap.to_notation(key) == '<cr>' and selected and self.config.get('egg_like_newline'):
            return COMPLETE_CONFIRM_KEYS.get(complete_type)
        return None

    def handle(self, key, ambient=None, function_name=None):
        """
        Process one key.

        Args:
            key: raw key or key notation
            ambient: editor state (see module docstring)
            function_name: run this named function instead of the key map

        Returns:
            str: text to insert into the buffer
        """
        ambient = ambient or {}
        context = self.context
        context.editor_mode = ambient.get('mode', 'i')

        complete_info = ambient.get('complete_info') or {}
        if complete_info.get('pum_visible'):
            handled = self._handle_complete_key(
                complete_info.get('selected', -1) >= 0,
                ambient.get('complete_type', 'native'),
                key,
            )
            if handled is not None:
                context.reset_state()
                context.pre_edit.output('')
                return handled

        # The buffer no longer ends with our pre-edit, e.g. after completion
        prev_input = ambient.get('prev_input')
        if prev_input is not None and not prev_input.endswith(str(context)):
            logger.debug('pre-edit lost from the buffer, resetting')
            context.reset_state()
            context.pre_edit.output('')

        before_state = context.state
        before_committed = context.pre_edit.committed
        before_mode = context.state.mode
        try:
            if function_name:
                keymap.resolve_action(function_name)(context, key)
            else:
                context.handle_key(key)
        except SkkError as e:
            logger.error(f'handle({key!r}) failed: {e}')
            self.host.echo(str(e))
            context.state = before_state
            context.pre_edit.committed = before_committed
            return ''

        output = context.pre_edit.output(str(context))
        if context.escaped:
            context.escaped = False
            return output + ESCAPE_KEY
        if output == '' and before_mode != context.state.mode:
            return MODE_CHANGED
        return output

    # ─── Introspection for completion sources ─────────────────────────────────

    def get_pre_edit(self):
        return str(self.context)

    def get_pre_edit_length(self):
        return len(str(self.context))

    def get_prefix(self):
        state = self.context.state
        if not isinstance(state, ComposingState):
            return ''
        return state.feed

    def get_candidates(self):
        """
        Completion data for the headword being composed.

        Returns:
            list: (headword, candidates) tuples
        """
        state = self.context.state
        if not isinstance(state, ComposingState):
            return []
        return self.context.library.completion(state.feed, state.pending, self.context.table())

    def get_ranks(self):
        state = self.context.state
        if not isinstance(state, ComposingState):
            return []
        return self.context.library.ranks(state.feed)

    def complete_callback(self, kana, word):
        """A completion item was confirmed in the host: learn it."""
        self.context.library.register(OKURI_NASI, kana, word)
        self.context.last_candidate = (OKURI_NASI, kana, word)

    # ─── Runtime registration ─────────────────────────────────────────────────

    def register_kana_table(self, name, table, create=False):
        """
        Returns:
            bool: True on success; failures are logged and echoed to the host
        """
        try:
            self.tables.register(name, table, create)
        except SkkError as e:
            logger.error(f'register_kana_table({name}) failed: {e}')
            self.host.echo(str(e))
            return False
        return True

    def register_key_map(self, state, key, func_name):
        try:
            self.keymaps.register(state, key, func_name)
        except SkkError as e:
            logger.error(f'register_key_map({state}, {key}) failed: {e}')
            self.host.echo(str(e))
            return False
        return True
