#!/usr/bin/env python3
# tests/test_util.py - Unit tests for util.py

import pytest
import json
import os
import tempfile
import shutil
from unittest.mock import patch
import sys

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import util


class TestGetConfigData:
    """Test suite for get_config_data() function"""

    @pytest.fixture
    def temp_dirs(self):
        """Create temporary directories for testing"""
        temp_home = tempfile.mkdtemp()

        yield {
            'home': temp_home,
            'config_dir': os.path.join(temp_home, '.config', 'skk-engine'),
            'config_file': os.path.join(temp_home, '.config', 'skk-engine', 'config.json'),
        }

        # Cleanup
        shutil.rmtree(temp_home, ignore_errors=True)

    def write_config(self, temp_dirs, data):
        os.makedirs(temp_dirs['config_dir'], exist_ok=True)
        with open(temp_dirs['config_file'], 'w', encoding='utf-8') as f:
            json.dump(data, f)

    def test_no_warnings_when_config_exists_and_valid(self, temp_dirs):
        """Test that no warnings are returned when config exists and is valid"""
        self.write_config(temp_dirs, util.get_default_config_data())

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert warnings == ""
        assert config['kana_table'] == 'rom'

    def test_defaults_when_config_not_found(self, temp_dirs):
        """Test that the defaults are used when config.json is missing"""
        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert warnings == ""
        assert config == util.DEFAULT_CONFIG

    def test_missing_key_filled_in(self, temp_dirs):
        """Test that keys missing from the user config get their default value"""
        self.write_config(temp_dirs, {'egg_like_newline': True})

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert config['egg_like_newline'] is True
        assert config['show_candidates_count'] == 4
        assert config['skk_server']['port'] == 1178

    def test_warning_when_type_mismatch(self, temp_dirs):
        """Test that a type mismatch is reported and replaced by the default"""
        self.write_config(temp_dirs, {'show_candidates_count': 'four'})

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert 'show_candidates_count' in warnings
        assert config['show_candidates_count'] == 4

    def test_nested_server_keys(self, temp_dirs):
        """Test that the skk_server block is checked key by key"""
        self.write_config(temp_dirs, {'skk_server': {'enabled': True, 'port': '1178'}})

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert config['skk_server']['enabled'] is True
        assert config['skk_server']['port'] == 1178
        assert config['skk_server']['host'] == '127.0.0.1'
        assert 'skk_server.port' in warnings

    def test_unknown_server_encoding(self, temp_dirs):
        """Test that an unknown server encoding falls back to euc-jp"""
        self.write_config(temp_dirs, {'skk_server': {'response_encoding': 'klingon'}})

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert config['skk_server']['response_encoding'] == 'euc-jp'
        assert 'klingon' in warnings

    def test_json_decode_error_returns_default_config(self, temp_dirs):
        """Test that a broken config.json falls back to the default configuration"""
        os.makedirs(temp_dirs['config_dir'], exist_ok=True)
        with open(temp_dirs['config_file'], 'w', encoding='utf-8') as f:
            f.write('{ "kana_table": ')

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            config, warnings = util.get_config_data()

        assert warnings != ""
        assert config == util.DEFAULT_CONFIG

    def test_explicit_path(self, temp_dirs):
        """Test loading from an explicitly given path"""
        path = os.path.join(temp_dirs['home'], 'other.json')
        with open(path, 'w', encoding='utf-8') as f:
            json.dump({'marker_henkan': '>'}, f)

        config, _ = util.get_config_data(path)
        assert config['marker_henkan'] == '>'

    def test_default_config_not_shared(self):
        """Test that callers get their own copy of the defaults"""
        config = util.get_default_config_data()
        config['skk_server']['port'] = 9999
        assert util.DEFAULT_CONFIG['skk_server']['port'] == 1178


class TestSaveConfigData:
    """Test suite for save_config_data() function"""

    @pytest.fixture
    def temp_dirs(self):
        """Create temporary directories for testing"""
        temp_home = tempfile.mkdtemp()

        yield {
            'home': temp_home,
            'config_dir': os.path.join(temp_home, '.config', 'skk-engine'),
            'config_file': os.path.join(temp_home, '.config', 'skk-engine', 'config.json')
        }

        # Cleanup
        shutil.rmtree(temp_home, ignore_errors=True)

    def test_save_config_creates_directory(self, temp_dirs):
        """Test that save_config_data creates the config directory if it doesn't exist"""
        assert not os.path.exists(temp_dirs['config_dir'])

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            result = util.save_config_data(util.get_default_config_data())

        assert result is True
        assert os.path.exists(temp_dirs['config_file'])

    def test_save_config_preserves_unicode(self, temp_dirs):
        """Test that save_config_data preserves Unicode characters"""
        config = util.get_default_config_data()
        config['marker_henkan'] = '▽'

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            util.save_config_data(config)

        with open(temp_dirs['config_file'], 'r', encoding='utf-8') as f:
            content = f.read()
        assert '▽' in content
        assert json.loads(content)['marker_henkan'] == '▽'

    def test_save_then_load(self, temp_dirs):
        """Test that a saved config loads back unchanged"""
        config = util.get_default_config_data()
        config['immediately_cancel'] = False

        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            util.save_config_data(config)
            loaded, warnings = util.get_config_data()

        assert warnings == ""
        assert loaded == config

    def test_save_config_handles_os_error(self, temp_dirs):
        """Test that save_config_data reports write errors instead of raising"""
        with patch('util.get_user_config_dir', return_value=temp_dirs['config_dir']):
            with patch('builtins.open', side_effect=PermissionError('read-only')):
                result = util.save_config_data(util.get_default_config_data())

        assert result is False


class TestPaths:
    """Test suite for path helpers"""

    def test_expand_path(self):
        with patch('util.get_homedir', return_value='/home/user'):
            assert util.expand_path('~/dict.skk') == '/home/user/dict.skk'
        assert util.expand_path('/abs/dict.skk') == '/abs/dict.skk'
        assert util.expand_path('') == ''

    def test_user_config_dir_respects_xdg(self):
        with patch.dict(os.environ, {'XDG_CONFIG_HOME': '/tmp/xdg'}):
            assert util.get_user_config_dir() == os.path.join('/tmp/xdg', 'skk-engine')


class TestEncodings:
    """Test suite for encoding helpers"""

    def test_python_codec(self):
        assert util.python_codec('euc-jp') == 'euc_jp'
        assert util.python_codec('sjis') == 'shift_jis'
        assert util.python_codec('auto') is None

    def test_python_codec_passthrough(self):
        assert util.python_codec('cp932') == 'cp932'

    def test_python_codec_unknown(self):
        with pytest.raises(LookupError):
            util.python_codec('no-such-encoding')

    def test_read_lines_fallback(self, tmp_path):
        """Test that an EUC-JP file is read without naming its encoding"""
        path = tmp_path / 'dict.skk'
        path.write_bytes('かんじ /漢字/\n'.encode('euc_jp'))
        assert util.read_lines_with_encoding(str(path)) == ['かんじ /漢字/']

    def test_read_lines_explicit(self, tmp_path):
        path = tmp_path / 'dict.skk'
        path.write_bytes('かんじ /漢字/\n'.encode('shift_jis'))
        assert util.read_lines_with_encoding(str(path), 'sjis') == ['かんじ /漢字/']


class TestParseSkkDictionaryLine:
    """Test suite for parse_skk_dictionary_line() function"""

    def test_simple_entry(self):
        reading, candidates = util.parse_skk_dictionary_line("あい /愛/")
        assert reading == "あい"
        assert candidates == ["愛"]

    def test_multiple_candidates(self):
        reading, candidates = util.parse_skk_dictionary_line("あやこ /亜矢子/彩子/")
        assert candidates == ["亜矢子", "彩子"]

    def test_comment_line(self):
        assert util.parse_skk_dictionary_line(";; okuri-nasi entries.") == (None, None)

    def test_empty_line(self):
        assert util.parse_skk_dictionary_line("   \t  ") == (None, None)

    def test_annotation_kept(self):
        """Annotations stay on the candidate; display strips them"""
        reading, candidates = util.parse_skk_dictionary_line("あい /愛;名詞/相/")
        assert candidates == ["愛;名詞", "相"]

    def test_okuri_block_skipped(self):
        reading, candidates = util.parse_skk_dictionary_line("かk /書/[く/書/]/欠/")
        assert reading == "かk"
        assert candidates == ["書", "欠"]

    def test_duplicates_removed(self):
        reading, candidates = util.parse_skk_dictionary_line("き /木/気/木/")
        assert candidates == ["木", "気"]

    def test_no_candidates(self):
        assert util.parse_skk_dictionary_line("から //") == (None, None)

    def test_format_round_trip(self):
        line = util.format_skk_dictionary_line("かんじ", ["漢字", "感じ"])
        assert line == "かんじ /漢字/感じ/"
        assert util.parse_skk_dictionary_line(line) == ("かんじ", ["漢字", "感じ"])


class TestAnnotationAndOkuri:
    """Test suite for small candidate helpers"""

    def test_strip_annotation(self):
        assert util.strip_annotation("注釈;これは注釈です") == "注釈"
        assert util.strip_annotation("漢字") == "漢字"

    @pytest.mark.parametrize('reading, expected', [
        ('かk', util.OKURI_ARI),
        ('おおきi', util.OKURI_ARI),
        ('かんじ', util.OKURI_NASI),
        ('tex', util.OKURI_NASI),
        ('ちょう>', util.OKURI_NASI),
    ])
    def test_guess_okuri_class(self, reading, expected):
        assert util.guess_okuri_class(reading) == expected


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
