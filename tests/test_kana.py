#!/usr/bin/env python3
# tests/test_kana.py - Unit tests for kana tables and the romaji matcher

import os
import sys

import pytest

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from errors import IllegalKanaResult, UnknownFunction, UnknownTable
import kana
from kana import (
    BoundAction, KanaOutput, KanaTable, KanaTableRegistry, Match,
    NO_MATCH, PARTIAL_MATCH, as_kana_result, convert_for_mode, parse_action,
)
import keymap
from state import MODE_HANKATAKANA, MODE_HIRAGANA, MODE_KATAKANA


@pytest.fixture
def registry():
    return KanaTableRegistry(validate_action=keymap.resolve_action)


@pytest.fixture
def rom(registry):
    return registry.get('rom')


class TestMatch:
    """Test suite for longest-match resolution"""

    def test_single_vowel(self, rom):
        assert kana.match(rom, 'a') == Match(KanaOutput('あ'), 1)

    def test_consonant_is_partial(self, rom):
        assert kana.match(rom, 'k') is PARTIAL_MATCH

    def test_syllable(self, rom):
        assert kana.match(rom, 'ka') == Match(KanaOutput('か'), 2)

    def test_yoon(self, rom):
        assert kana.match(rom, 'ky') is PARTIAL_MATCH
        assert kana.match(rom, 'kya') == Match(KanaOutput('きゃ'), 3)

    def test_sokuon_leaves_tail(self, rom):
        result = kana.match(rom, 'kk')
        assert result == Match(KanaOutput('っ', 'k'), 2)

    def test_n_waits_for_more(self, rom):
        """A lone "n" can still become な/に/..., so it must wait"""
        assert kana.match(rom, 'n') is PARTIAL_MATCH

    def test_n_before_consonant(self, rom):
        assert kana.match(rom, 'nk') == Match(KanaOutput('ん', 'k'), 2)

    def test_longest_prefix_of_longer_input(self, rom):
        """Keys after the longest matching prefix are left for the caller"""
        result = kana.match(rom, 'n ')
        assert result == Match(KanaOutput('ん'), 1)

    def test_no_match(self, rom):
        assert kana.match(rom, 'Q') is NO_MATCH
        assert kana.match(rom, '') is NO_MATCH

    def test_bound_action(self, rom):
        assert kana.match(rom, ' ') == Match(BoundAction('henkan_first'), 1)
        assert kana.match(rom, ';') == Match(BoundAction('henkan_point'), 1)

    def test_match_is_longest(self):
        table = KanaTable([('a', KanaOutput('1')), ('ab', KanaOutput('2')), ('abc', KanaOutput('3'))])
        assert table.match('abx') == Match(KanaOutput('2'), 2)
        assert table.match('ab') is PARTIAL_MATCH
        assert table.match('abc') == Match(KanaOutput('3'), 3)

    def test_case_sensitive(self):
        table = KanaTable([('a', KanaOutput('小')), ('A', KanaOutput('大'))])
        assert table.match('A') == Match(KanaOutput('大'), 1)


class TestKanaTable:
    """Test suite for the sorted, deduplicated table"""

    def test_sorted_by_code_point(self):
        table = KanaTable([('b', KanaOutput('b')), ('A', KanaOutput('A')), ('a', KanaOutput('a'))])
        assert table.keys() == ['A', 'a', 'b']

    def test_newest_entry_wins(self):
        table = KanaTable([('ka', KanaOutput('カ')), ('ka', KanaOutput('か'))])
        assert table.get('ka') == KanaOutput('カ')
        assert len(table) == 1

    def test_none_deletes(self):
        table = KanaTable([('ka', KanaOutput('か'))]).merged([('ka', None)])
        assert 'ka' not in table
        assert table.match('ka') is NO_MATCH

    def test_merged_leaves_original(self):
        table = KanaTable([('ka', KanaOutput('か'))])
        merged = table.merged([('ka', KanaOutput('カ'))])
        assert table.get('ka') == KanaOutput('か')
        assert merged.get('ka') == KanaOutput('カ')

    def test_alternatives(self, rom):
        """Every kana an ambiguous key can still produce, in table order"""
        alternatives = rom.alternatives('k')
        keys = [key for key, _ in alternatives]
        assert keys == sorted(keys)
        assert ('ka', KanaOutput('か')) in alternatives
        assert ('kyo', KanaOutput('きょ')) in alternatives
        assert all(key.startswith('k') for key in keys)

    def test_alternatives_skip_actions(self):
        table = KanaTable([('z', BoundAction('latin')), ('za', KanaOutput('ざ'))])
        assert table.alternatives('z') == [('za', KanaOutput('ざ'))]


class TestAsKanaResult:
    """Test suite for raw table value normalization"""

    def test_list(self):
        assert as_kana_result('ka', ['か']) == KanaOutput('か', '')
        assert as_kana_result('kk', ['っ', 'k']) == KanaOutput('っ', 'k')

    def test_action_string(self):
        assert as_kana_result(' ', 'henkan_first') == BoundAction('henkan_first')

    def test_parameterized_action(self):
        assert parse_action('upper-a') == BoundAction('upper', 'a')
        assert str(BoundAction('upper', 'a')) == 'upper-a'

    def test_falsy_is_deletion(self):
        assert as_kana_result('ka', None) is None
        assert as_kana_result('ka', '') is None

    def test_illegal(self):
        with pytest.raises(IllegalKanaResult):
            as_kana_result('ka', 42)
        with pytest.raises(IllegalKanaResult):
            as_kana_result('ka', [1, 2])

    def test_unknown_action(self):
        with pytest.raises(UnknownFunction):
            as_kana_result('@', 'no_such_function', keymap.resolve_action)


class TestKanaTableRegistry:
    """Test suite for named tables"""

    def test_builtin_tables(self, registry):
        assert set(registry.names()) >= {'rom', 'zen'}

    def test_unknown_table(self, registry):
        with pytest.raises(UnknownTable) as e:
            registry.get('azik')
        assert 'azik' in str(e.value)

    def test_register_replaces_entry(self, registry):
        registry.register('rom', {'ka': ['カ']})
        assert registry.get('rom').get('ka') == KanaOutput('カ')
        assert registry.get('rom').get('ki') == KanaOutput('き')

    def test_register_unknown_without_create(self, registry):
        with pytest.raises(UnknownTable):
            registry.register('azik', {'kz': ['かん']})

    def test_register_create(self, registry):
        registry.register('azik', {'kz': ['かん']}, create=True)
        assert registry.get('azik').match('kz') == Match(KanaOutput('かん'), 2)

    def test_register_delete(self, registry):
        registry.register('rom', {'xka': None})
        assert 'xka' not in registry.get('rom')
        assert registry.get('rom').match('xka') is NO_MATCH

    def test_illegal_entry_rejects_whole_table(self, registry):
        before = registry.get('rom')
        with pytest.raises(IllegalKanaResult):
            registry.register('rom', {'ka': ['カ'], 'ki': 3})
        assert registry.get('rom') is before

    def test_unknown_function_rejects_table(self, registry):
        with pytest.raises(UnknownFunction):
            registry.register('rom', {'@': 'no_such_function'})
        assert '@' not in registry.get('rom')

    def test_register_parameterized_action(self, registry):
        registry.register('rom', {'@': 'upper-a'})
        assert registry.get('rom').get('@') == BoundAction('upper', 'a')

    def test_zen_table(self, registry):
        zen = registry.get('zen')
        assert zen.get('a') == KanaOutput('ａ')
        assert zen.get('1') == KanaOutput('１')
        assert zen.get(' ') == KanaOutput('　')

    def test_load_files(self, registry, tmp_path):
        path = tmp_path / 'table.txt'
        path.write_text('# custom entries\n\nkz,かん\nxx,×\n', encoding='utf-8')
        count = registry.load_files([str(path)])
        assert count == 2
        assert registry.get('rom').get('kz') == KanaOutput('かん')

    def test_load_files_with_encoding(self, registry, tmp_path):
        path = tmp_path / 'table.txt'
        path.write_bytes('kz,かん\n'.encode('euc_jp'))
        registry.load_files([[str(path), 'euc-jp']])
        assert registry.get('rom').get('kz') == KanaOutput('かん')

    def test_load_missing_file(self, registry, tmp_path):
        assert registry.load_files([str(tmp_path / 'missing.txt')]) == 0


class TestConvertForMode:
    """Test suite for mode rendering"""

    def test_modes(self):
        assert convert_for_mode(MODE_HIRAGANA, 'かな') == 'かな'
        assert convert_for_mode(MODE_KATAKANA, 'かな') == 'カナ'
        assert convert_for_mode(MODE_HANKATAKANA, 'かな') == 'ｶﾅ'


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
