#!/usr/bin/env python3
"""
keymap.py - Key dispatch per input state and the named function registry

Keys arrive either as raw characters ("a", " ", "\\x08") or in key notation
("<space>", "<bs>", "<c-g>"). Bindings are looked up by the key as given
first and then by its canonical notation, so "<c-h>" and "\\x08" both find
a "<bs>" binding.

Key maps:
    input    direct input and headword composing (default: kana_input)
    henkan   candidate conversion (default: henkan_input)
    latin    latin and wide-latin direct input (default: kana_input)
"""

import logging

from errors import UnknownFunction, UnknownState
import function
import henkan
from kana import BoundAction, parse_action
from state import DirectState, MODE_LATIN, MODE_ZENKAKU

logger = logging.getLogger(__name__)

FUNCTIONS = {
    # common
    'kakutei': function.kakutei,
    'newline': function.newline,
    'cancel': function.cancel,
    # disable
    'disable': function.disable,
    'escape': function.escape,
    # henkan
    'henkan_first': henkan.henkan_first,
    'henkan_forward': henkan.henkan_forward,
    'henkan_backward': henkan.henkan_backward,
    'henkan_input': henkan.henkan_input,
    'purge_candidate': function.purge_candidate,
    # input
    'kakutei_feed': function.kakutei_feed,
    'henkan_point': function.henkan_point,
    'delete_char': function.delete_char,
    # mode
    'abbrev': function.abbrev,
    'hirakana': function.hirakana,
    'katakana': function.katakana,
    'hankatakana': function.hankatakana,
    'zenkaku': function.zenkaku,
    'latin': function.latin,
}

FUNCTIONS_WITH_ARGS = {
    'upper': henkan.upper,
}

NOTATION_TO_KEY = {
    '<space>': ' ',
    '<bs>': '\x08',
    '<c-h>': '\x08',
    '<tab>': '\t',
    '<nl>': '\n',
    '<c-j>': '\n',
    '<cr>': '\r',
    '<c-m>': '\r',
    '<esc>': '\x1b',
    '<c-g>': '\x07',
    '<c-q>': '\x11',
    '<c-y>': '\x19',
}

KEY_TO_NOTATION = {
    ' ': '<space>',
    '\x08': '<bs>',
    '\t': '<tab>',
    '\n': '<nl>',
    '\r': '<cr>',
    '\x1b': '<esc>',
    '\x07': '<c-g>',
    '\x11': '<c-q>',
    '\x19': '<c-y>',
}


def to_key(notation):
    """The raw character for a notation; notations without one stay as they are."""
    return NOTATION_TO_KEY.get(notation, notation)


def to_notation(key):
    """The canonical notation of a key or notation."""
    return KEY_TO_NOTATION.get(to_key(key), key)


def resolve_action(action):
    """
    Look up the function for a bound action.

    Args:
        action: BoundAction or its "name" / "name-args" string form

    Returns:
        callable: function(context, char)

    Raises:
        UnknownFunction: if no such function is registered
    """
    if not isinstance(action, BoundAction):
        action = parse_action(str(action))
    if action.args is not None:
        factory = FUNCTIONS_WITH_ARGS.get(action.name)
        if factory is not None:
            return factory(action.args)
    else:
        func = FUNCTIONS.get(action.name)
        if func is not None:
            return func
    raise UnknownFunction(str(action))


class KeyMap:
    def __init__(self, default, bindings):
        self.default = default
        self.map = dict(bindings)

    def lookup(self, key):
        return self.map.get(key) or self.map.get(to_notation(key)) or self.default


def default_keymaps():
    return {
        'input': KeyMap(function.kana_input, {
            '<bs>': function.delete_char,
            '<c-g>': function.cancel,
            '<cr>': function.newline,
            '<esc>': function.escape,
            '<nl>': function.kakutei,
            '<c-q>': function.hankatakana,
            '<c-space>': henkan.henkan_first,
            '<s-space>': henkan.henkan_first,
        }),
        'henkan': KeyMap(henkan.henkan_input, {
            '<c-g>': function.cancel,
            '<cr>': function.newline,
            '<nl>': function.kakutei,
            '<space>': henkan.henkan_forward,
            '<s-space>': henkan.henkan_forward,
            '<c-space>': henkan.henkan_forward,
            'x': henkan.henkan_backward,
            'X': function.purge_candidate,
        }),
        'latin': KeyMap(function.kana_input, {
            '<cr>': function.newline,
            '<esc>': function.escape,
            '<nl>': function.hirakana,
        }),
    }


class KeyMaps:
    """
    The key maps of one engine. Contexts dispatch through the KeyMaps they
    were created with.
    """

    def __init__(self):
        self.maps = default_keymaps()

    def name_for(self, state):
        if isinstance(state, DirectState) and state.mode in (MODE_LATIN, MODE_ZENKAKU):
            return 'latin'
        return state.type

    def handle(self, context, key):
        name = self.name_for(context.state)
        keymap = self.maps.get(name)
        if keymap is None:
            raise UnknownState(name)
        logger.debug(f'handle_key: {key!r} ({name})')
        keymap.lookup(key)(context, to_key(key))

    def resolve(self, action):
        return resolve_action(action)

    def register(self, state_name, key, func_name):
        """
        Bind `key` in the key map of `state_name` to a named function.

        An empty function name removes the binding.

        Raises:
            UnknownState: if there is no key map called state_name
            UnknownFunction: if func_name does not name a function
        """
        logger.debug(f'register_key_map: state = {state_name} key = {key} func = {func_name}')
        keymap = self.maps.get(state_name)
        if keymap is None:
            raise UnknownState(state_name)
        if not func_name:
            keymap.map.pop(to_notation(key), None)
            return
        keymap.map[to_notation(key)] = resolve_action(func_name)


def handle_key(context, key):
    """Dispatch one key through the context's key maps."""
    context.keymaps.handle(context, key)
