#!/usr/bin/env python3
# tests/test_keymap.py - Unit tests for key notation and key maps

import os
import sys

import pytest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from context import Context
from errors import UnknownFunction, UnknownState
import function
import henkan
from kana import BoundAction
import keymap
from state import ConvertingState, DirectState, MODE_KATAKANA, MODE_LATIN, MODE_ZENKAKU


class TestNotation:
    """Test suite for key notation"""

    @pytest.mark.parametrize('notation, key', [
        ('<space>', ' '),
        ('<bs>', '\x08'),
        ('<c-h>', '\x08'),
        ('<nl>', '\n'),
        ('<c-g>', '\x07'),
        ('a', 'a'),
    ])
    def test_to_key(self, notation, key):
        assert keymap.to_key(notation) == key

    def test_to_notation_is_canonical(self):
        assert keymap.to_notation('\x08') == '<bs>'
        assert keymap.to_notation('<c-h>') == '<bs>'
        assert keymap.to_notation('<c-j>') == '<nl>'

    def test_unknown_notation_passes_through(self):
        assert keymap.to_notation('<s-space>') == '<s-space>'
        assert keymap.to_notation('a') == 'a'


class TestResolveAction:
    """Test suite for the function registry"""

    def test_by_name(self):
        assert keymap.resolve_action('kakutei') is function.kakutei
        assert keymap.resolve_action(BoundAction('henkan_first')) is henkan.henkan_first

    def test_with_args(self):
        assert callable(keymap.resolve_action('upper-a'))

    def test_unknown(self):
        with pytest.raises(UnknownFunction):
            keymap.resolve_action('no_such_function')

    def test_args_on_plain_function(self):
        with pytest.raises(UnknownFunction):
            keymap.resolve_action('kakutei-x')

    def test_upper_marks_henkan_point(self):
        context = Context()
        keymap.resolve_action('upper-k')(context, '')
        assert str(context) == '▽k'
        context.handle_key('a')
        keymap.resolve_action('upper-k')(context, '')
        assert str(context) == '▽か*k'


class TestKeyMaps:
    """Test suite for per-state key maps"""

    @pytest.fixture
    def keymaps(self):
        return keymap.KeyMaps()

    def test_name_for(self, keymaps):
        assert keymaps.name_for(DirectState()) == 'input'
        assert keymaps.name_for(DirectState(mode=MODE_LATIN)) == 'latin'
        assert keymaps.name_for(DirectState(mode=MODE_ZENKAKU)) == 'latin'
        assert keymaps.name_for(ConvertingState(mode='hiragana', feed='か', word='か')) == 'henkan'

    def test_lookup_by_raw_key_and_notation(self, keymaps):
        input_map = keymaps.maps['input']
        assert input_map.lookup('\x08') is function.delete_char
        assert input_map.lookup('<bs>') is function.delete_char
        assert input_map.lookup('a') is function.kana_input

    def test_register(self, keymaps):
        keymaps.register('input', '<c-q>', 'katakana')
        assert keymaps.maps['input'].lookup('\x11') is function.katakana

    def test_register_raw_key(self, keymaps):
        keymaps.register('henkan', '\x08', 'henkan_backward')
        assert keymaps.maps['henkan'].lookup('<bs>') is henkan.henkan_backward

    def test_unregister(self, keymaps):
        keymaps.register('henkan', 'x', '')
        assert keymaps.maps['henkan'].lookup('x') is henkan.henkan_input

    def test_unknown_state(self, keymaps):
        with pytest.raises(UnknownState):
            keymaps.register('visual', 'a', 'kakutei')

    def test_unknown_function(self, keymaps):
        with pytest.raises(UnknownFunction):
            keymaps.register('input', 'a', 'no_such_function')

    def test_maps_are_per_instance(self, keymaps):
        keymaps.register('input', '<tab>', 'katakana')
        assert keymap.KeyMaps().maps['input'].lookup('\t') is function.kana_input

    def test_handle_dispatches_on_state(self):
        context = Context()
        keymap.handle_key(context, 'q')
        assert context.mode == MODE_KATAKANA


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
