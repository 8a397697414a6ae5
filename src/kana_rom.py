#!/usr/bin/env python3
# kana_rom.py - Built-in romaji to hiragana table (ローマ字かな変換表)
#
# Each value is either [kana, tail] or the name of a bound action.
# "tail" is re-fed as pending input after the kana is emitted, which is how
# doubled consonants (kk -> っ + k) and n + consonant (nb -> ん + b) work.

_VOWELS = 'aiueo'

_ROWS = {
    '': 'あいうえお',
    'k': 'かきくけこ',
    's': 'さしすせそ',
    't': 'たちつてと',
    'n': 'なにぬねの',
    'h': 'はひふへほ',
    'm': 'まみむめも',
    'r': 'らりるれろ',
    'g': 'がぎぐげご',
    'z': 'ざじずぜぞ',
    'd': 'だぢづでど',
    'b': 'ばびぶべぼ',
    'p': 'ぱぴぷぺぽ',
    'x': 'ぁぃぅぇぉ',
}

# consonant + y + vowel (small ya/yu/yo rows)
_YOON = {
    'ky': 'き', 'sy': 'し', 'ty': 'ち', 'ny': 'に', 'hy': 'ひ', 'my': 'み',
    'ry': 'り', 'gy': 'ぎ', 'zy': 'じ', 'dy': 'ぢ', 'by': 'び', 'py': 'ぴ',
    'ch': 'ち', 'cy': 'ち', 'sh': 'し', 'j': 'じ', 'jy': 'じ',
}

_SMALL_Y = {'a': 'ゃ', 'i': 'ぃ', 'u': 'ゅ', 'e': 'ぇ', 'o': 'ょ'}

_MISC = {
    'ya': 'や', 'yu': 'ゆ', 'yo': 'よ', 'yi': 'い', 'ye': 'いぇ',
    'wa': 'わ', 'wi': 'うぃ', 'wu': 'う', 'we': 'うぇ', 'wo': 'を',
    'xya': 'ゃ', 'xyu': 'ゅ', 'xyo': 'ょ', 'xtu': 'っ', 'xtsu': 'っ',
    'xwa': 'ゎ', 'xka': 'ゕ', 'xke': 'ゖ',
    'shi': 'し', 'chi': 'ち', 'tsu': 'つ', 'ji': 'じ', 'fu': 'ふ',
    'fa': 'ふぁ', 'fi': 'ふぃ', 'fe': 'ふぇ', 'fo': 'ふぉ', 'fyu': 'ふゅ',
    'va': 'ゔぁ', 'vi': 'ゔぃ', 'vu': 'ゔ', 've': 'ゔぇ', 'vo': 'ゔぉ',
    'tsa': 'つぁ', 'tsi': 'つぃ', 'tse': 'つぇ', 'tso': 'つぉ',
    'thi': 'てぃ', 'thu': 'てゅ', 'dhi': 'でぃ', 'dhu': 'でゅ',
    'twu': 'とぅ', 'dwu': 'どぅ', 'she': 'しぇ', 'che': 'ちぇ', 'je': 'じぇ',
    'nn': 'ん', "n'": 'ん', 'n': 'ん',
    '-': 'ー', ',': '、', '.': '。', '[': '「', ']': '」',
    '~': '〜', '!': '！', '?': '？', ':': '：',
    'z,': '‥', 'z-': '〜', 'z.': '…', 'z/': '・', 'z[': '『', 'z]': '』',
    'zh': '←', 'zj': '↓', 'zk': '↑', 'zl': '→',
    '>': '>',
}

_ACTIONS = {
    ' ': 'henkan_first',
    'q': 'katakana',
    'l': 'latin',
    'L': 'zenkaku',
    '/': 'abbrev',
    ';': 'henkan_point',
}

# Consonants whose doubling produces a small tsu (促音)
_SOKUON = 'bcdfghjkmprstvwyz'

# Consonants after which a lone n becomes ん (撥音) without needing "nn"
_N_FOLLOWERS = 'bcdfghjkmprstvwz'


def _build():
    table = {}
    for consonant, kanas in _ROWS.items():
        for vowel, kana in zip(_VOWELS, kanas):
            table[consonant + vowel] = [kana, '']
    for prefix, base in _YOON.items():
        for vowel, small in _SMALL_Y.items():
            if prefix in ('j', 'sh', 'ch') and vowel == 'i':
                table[prefix + vowel] = [base, '']
            else:
                table[prefix + vowel] = [base + small, '']
    for key, kana in _MISC.items():
        table[key] = [kana, '']
    for c in _SOKUON:
        table[c + c] = ['っ', c]
    table['tch'] = ['っ', 'ch']
    for c in _N_FOLLOWERS:
        table.setdefault('n' + c, ['ん', c])
    table.update(_ACTIONS)
    return table


ROM_TABLE = _build()
