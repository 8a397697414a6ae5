import codecs
import copy
import json
import os
import logging

logger = logging.getLogger(__name__)


# Encodings accepted for dictionary files and the SKK server, mapped to the
# Python codec that implements them. "auto" has no fixed codec: decoding
# tries FALLBACK_ENCODINGS in order and encoding uses UTF-8.
ENCODINGS = {
    'utf-32': 'utf-32',
    'utf-16': 'utf-16',
    'utf-16be': 'utf-16-be',
    'utf-16le': 'utf-16-le',
    'binary': 'latin-1',
    'ascii': 'ascii',
    'jis': 'iso2022_jp',
    'utf-8': 'utf-8',
    'euc-jp': 'euc_jp',
    'sjis': 'shift_jis',
    'unicode': 'utf-16',
    'auto': None,
}

FALLBACK_ENCODINGS = ['utf-8', 'euc-jp', 'shift-jis']

OKURI_ARI = 'okuri-ari'
OKURI_NASI = 'okuri-nasi'

DEFAULT_CONFIG = {
    'debug': False,
    'kana_table': 'rom',
    'global_kana_table_files': [],
    'global_dictionaries': [],
    'user_dictionary': '~/.config/skk-engine/user_dictionary.skk',
    'completion_rank_file': '~/.config/skk-engine/rank.json',
    'immediately_cancel': True,
    'immediately_okuri_convert': True,
    'immediately_dictionary_rw': True,
    'egg_like_newline': False,
    'keep_state': False,
    'marker_henkan': '▽',
    'marker_henkan_select': '▼',
    'select_candidate_keys': 'asdfjkl',
    'show_candidates_count': 4,
    'use_popup': True,
    'skk_server': {
        'enabled': False,
        'host': '127.0.0.1',
        'port': 1178,
        'request_encoding': 'euc-jp',
        'response_encoding': 'euc-jp',
    },
}


def get_package_name():
    '''
    returns 'skk-engine'
    '''
    return 'skk-engine'


def get_version():
    return '0.1.0'


def get_homedir():
    '''
    Return the path to the $HOME directory.
    '''
    return os.path.expanduser('~')


def get_user_config_dir():
    '''
    Return the path to the config directory under $HOME.
    Typically, it would be $HOME/.config/skk-engine
    '''
    base = os.environ.get('XDG_CONFIG_HOME') or os.path.join(get_homedir(), '.config')
    return os.path.join(base, get_package_name())


def expand_path(path):
    """Expand a leading ~ in a configured path."""
    if path and path[0] == '~':
        return get_homedir() + path[1:]
    return path


def get_default_config_data():
    return copy.deepcopy(DEFAULT_CONFIG)


def get_config_data(configfile_path=None):
    '''
    Load config.json from the user config directory and reconcile it with
    DEFAULT_CONFIG. Missing keys are filled in and values whose type differs
    from the default are replaced by the default.

    Args:
        configfile_path: Path to the config file. Defaults to
                         $XDG_CONFIG_HOME/skk-engine/config.json

    Returns:
        tuple: (config_data, warnings_string) where warnings_string is empty if no warnings
    '''
    if configfile_path is None:
        configfile_path = os.path.join(get_user_config_dir(), 'config.json')
    default_config = get_default_config_data()
    warnings = ""

    if not os.path.exists(configfile_path):
        logger.info(f'config.json is not found at {configfile_path} . Using the default configuration')
        return default_config, warnings
    try:
        with codecs.open(configfile_path, encoding='utf-8') as f:
            config_data = json.load(f)
    except json.decoder.JSONDecodeError as e:
        logger.error(f'Error loading {configfile_path}')
        logger.error(e)
        logger.error('Using the default configuration')
        return default_config, str(e)

    if not isinstance(config_data, dict):
        warning_msg = f'{configfile_path} does not hold a JSON object. Using the default configuration'
        logger.warning(warning_msg)
        return default_config, warning_msg

    for k in default_config:
        if k not in config_data:
            config_data[k] = default_config[k]
            continue
        if type(config_data[k]) != type(default_config[k]):
            warning_msg = f'Type mismatch found for the key "{k}" in {configfile_path}. Replacing the value of this key with the default value'
            logger.warning(warning_msg)
            warnings += ("\n" if warnings else "") + warning_msg
            config_data[k] = default_config[k]

    # The server block is nested, so check its keys one level down
    server = config_data['skk_server']
    for k, v in default_config['skk_server'].items():
        if k not in server or type(server[k]) != type(v):
            if k in server:
                warning_msg = f'Type mismatch found for the key "skk_server.{k}". Replacing it with the default value'
                logger.warning(warning_msg)
                warnings += ("\n" if warnings else "") + warning_msg
            server[k] = v

    for name in (server['request_encoding'], server['response_encoding']):
        if name not in ENCODINGS:
            warning_msg = f'Unknown encoding "{name}" for the SKK server. Falling back to euc-jp'
            logger.warning(warning_msg)
            warnings += ("\n" if warnings else "") + warning_msg
    if server['request_encoding'] not in ENCODINGS:
        server['request_encoding'] = 'euc-jp'
    if server['response_encoding'] not in ENCODINGS:
        server['response_encoding'] = 'euc-jp'

    return config_data, warnings


def save_config_data(config_data, configfile_path=None):
    '''
    Save config data to the user config directory.

    Args:
        config_data: Dictionary containing configuration data to save

    Returns:
        bool: True if save was successful, False otherwise
    '''
    if configfile_path is None:
        configfile_path = os.path.join(get_user_config_dir(), 'config.json')

    try:
        os.makedirs(os.path.dirname(configfile_path), exist_ok=True)
        with open(configfile_path, 'w', encoding='utf-8') as f:
            json.dump(config_data, f, ensure_ascii=False, indent=2)
        logger.info(f'Configuration saved successfully to {configfile_path}')
        return True
    except OSError as e:
        logger.error(f'Error saving config.json to {configfile_path}')
        logger.error(e)
        return False


def python_codec(name):
    """
    Map an encoding name from ENCODINGS to a Python codec name.

    Unknown names are passed through when Python itself knows them.

    Raises:
        LookupError: if neither ENCODINGS nor the codecs registry knows the name
    """
    if name in ENCODINGS:
        return ENCODINGS[name]
    codecs.lookup(name)
    return name


def read_lines_with_encoding(file_path, encoding=None):
    """
    Read a text file and return its lines.

    Args:
        file_path: Path of the file
        encoding: Encoding name (a key of ENCODINGS or a Python codec).
                  When empty, None or "auto", FALLBACK_ENCODINGS are tried in order.

    Returns:
        list or None: the lines (without trailing newlines), or None if the
                      file could not be decoded with any candidate encoding
    """
    codec = python_codec(encoding) if encoding else None
    encodings = [codec] if codec else FALLBACK_ENCODINGS

    for enc in encodings:
        try:
            with open(file_path, 'r', encoding=enc) as f:
                content = f.read().splitlines()
            logger.debug(f'Successfully read {file_path} with encoding {enc}')
            return content
        except UnicodeDecodeError:
            continue

    logger.error(f'Failed to read {file_path} with any supported encoding')
    return None


def strip_annotation(candidate):
    """Drop the ;annotation part of a candidate (e.g., "候補;注釈" -> "候補")."""
    return candidate.split(';', 1)[0]


def parse_skk_dictionary_line(line):
    """
    Parse a single line from an SKK dictionary file.

    SKK format: reading /candidate1/candidate2/.../
    Example: あやこ /亜矢子/彩子/

    Annotations (候補;注釈) are kept; callers strip them for display.
    Okuri blocks such as [く/書/] are skipped.

    Args:
        line: A single line from the SKK dictionary

    Returns:
        tuple: (reading, candidates_list) or (None, None) if line is invalid/comment
    """
    line = line.strip()
    if not line or line.startswith(';'):
        return None, None

    parts = line.split(' ', 1)
    if len(parts) != 2:
        return None, None

    reading = parts[0]
    candidates_part = parts[1].strip().strip('/')
    if not candidates_part:
        return None, None

    candidates = []
    in_block = False
    for candidate in candidates_part.split('/'):
        if candidate.startswith('['):
            in_block = True
            continue
        if in_block:
            if candidate.endswith(']') or candidate == ']':
                in_block = False
            continue
        if candidate and strip_annotation(candidate) and candidate not in candidates:
            candidates.append(candidate)

    if not candidates:
        return None, None

    return reading, candidates


def guess_okuri_class(reading):
    """
    Classify a headword when the dictionary carries no section markers.

    A headword is okuri-ari when it ends with an ASCII letter after a
    non-ASCII stem, e.g. "かk".
    """
    if len(reading) >= 2 and reading[-1].isascii() and reading[-1].isalpha() and not reading[0].isascii():
        return OKURI_ARI
    return OKURI_NASI


def format_skk_dictionary_line(reading, candidates):
    """Inverse of parse_skk_dictionary_line()."""
    return f'{reading} /' + '/'.join(candidates) + '/'
