#!/usr/bin/env python3
# dictionary.py - SKK dictionaries and the merged candidate store (辞書)

import bisect
import logging
import os
import threading

import orjson

from errors import RegistrationFailure
from skk_server import SkkServerClient
import util
from util import OKURI_ARI, OKURI_NASI

logger = logging.getLogger(__name__)

OKURI_ARI_MARKER = ';; okuri-ari entries.'
OKURI_NASI_MARKER = ';; okuri-nasi entries.'


class SkkDictionary:
    """
    A read-only SKK dictionary.

    Entries are kept per conjugation class:
        {"okuri-ari": {"かk": ["書", "欠"]}, "okuri-nasi": {"かんじ": ["漢字", "感じ"]}}

    Files are in SKK format; the ";; okuri-ari entries." and
    ";; okuri-nasi entries." comment lines switch between the two sections.
    Files without those markers are classified per headword.
    """

    def __init__(self, entries=None, name=''):
        self.name = name
        self._entries = {OKURI_ARI: {}, OKURI_NASI: {}}
        if entries:
            for okuri_class, words in entries.items():
                self._entries[okuri_class].update({w: list(c) for w, c in words.items()})
        self._sorted_headwords = None

    @classmethod
    def load(cls, path, encoding=None):
        """
        Load an SKK dictionary file.

        A missing or undecodable file yields an empty dictionary and a
        warning, so the other dictionaries keep working.

        Args:
            path: Path to the SKK dictionary file
            encoding: Encoding name; tried in FALLBACK_ENCODINGS order when empty

        Returns:
            SkkDictionary
        """
        dictionary = cls(name=path)
        if not os.path.exists(path):
            logger.warning(f'Dictionary file not found: {path}')
            return dictionary
        try:
            lines = util.read_lines_with_encoding(path, encoding)
        except (OSError, LookupError) as e:
            logger.error(f'Failed to load dictionary: {path} - {e}')
            return dictionary
        if lines is None:
            logger.warning(f'Dictionary {path} could not be decoded, skipping')
            return dictionary
        count = dictionary.parse_lines(lines)
        logger.info(f'Loaded dictionary: {path} ({count} entries)')
        return dictionary

    def parse_lines(self, lines):
        section = None
        count = 0
        for line in lines:
            if line.startswith(OKURI_ARI_MARKER):
                section = OKURI_ARI
                continue
            if line.startswith(OKURI_NASI_MARKER):
                section = OKURI_NASI
                continue
            reading, candidates = util.parse_skk_dictionary_line(line)
            if not reading:
                continue
            okuri_class = section or util.guess_okuri_class(reading)
            existing = self._entries[okuri_class].setdefault(reading, [])
            existing.extend(c for c in candidates if c not in existing)
            count += 1
        self._sorted_headwords = None
        return count

    def lookup(self, okuri_class, word):
        return list(self._entries[okuri_class].get(word, []))

    def headwords(self, prefix):
        """okuri-nasi headwords starting with prefix, in code-point order."""
        if self._sorted_headwords is None:
            self._sorted_headwords = sorted(self._entries[OKURI_NASI])
        words = self._sorted_headwords
        result = []
        i = bisect.bisect_left(words, prefix)
        while i < len(words) and words[i].startswith(prefix):
            result.append(words[i])
            i += 1
        return result

    def entries(self, okuri_class):
        return self._entries[okuri_class]


class UserDictionary(SkkDictionary):
    """
    The read-write user dictionary plus its usage ranks.

    Ranks are a commit sequence number per (headword, candidate): every
    registration gets a number higher than all earlier ones, so sorting by
    rank puts the most recently used candidate first.

    Rank file format (JSON):
        {"headword": {"candidate": rank, ...}, ...}
    """

    def __init__(self, path=None, rank_path=None, immediately_rw=True):
        super().__init__(name=path or '')
        self.path = path
        self.rank_path = rank_path
        self.immediately_rw = immediately_rw
        self.last_error = None
        self._ranks = {}
        self._rank_counter = 0
        self._lock = threading.Lock()

    def load(self):
        if self.path and os.path.exists(self.path):
            lines = util.read_lines_with_encoding(self.path, 'utf-8')
            if lines is not None:
                count = self.parse_lines(lines)
                logger.info(f'Loaded user dictionary: {self.path} ({count} entries)')
        if self.rank_path and os.path.exists(self.rank_path):
            try:
                with open(self.rank_path, 'rb') as f:
                    data = orjson.loads(f.read())
            except orjson.JSONDecodeError as e:
                logger.error(f'Failed to parse rank file: {self.rank_path} - {e}')
                data = {}
            except OSError as e:
                logger.error(f'Failed to read rank file: {self.rank_path} - {e}')
                data = {}
            if isinstance(data, dict):
                for headword, ranks in data.items():
                    if not isinstance(ranks, dict):
                        continue
                    self._ranks[headword] = {c: r for c, r in ranks.items() if isinstance(r, int)}
            self._rank_counter = max((r for ranks in self._ranks.values() for r in ranks.values()), default=0)
        return self

    def rank(self, word, candidate):
        return self._ranks.get(word, {}).get(util.strip_annotation(candidate), 0)

    def ranks(self, prefix):
        """(candidate, rank) pairs for every ranked headword starting with prefix."""
        result = []
        for headword, ranks in self._ranks.items():
            if headword.startswith(prefix):
                result.extend(ranks.items())
        return result

    def register(self, okuri_class, word, candidate):
        """
        Put `candidate` at the front of the entry for `word` and bump its rank.

        Write failures are logged and kept in last_error; they are never
        raised, so the commit that called us always goes through.

        Returns:
            bool: True if the change reached the backing file (or no write
                  was due), False if it only lives in memory
        """
        with self._lock:
            entry = self._entries[okuri_class].setdefault(word, [])
            if candidate in entry:
                entry.remove(candidate)
            entry.insert(0, candidate)
            self._rank_counter += 1
            self._ranks.setdefault(word, {})[util.strip_annotation(candidate)] = self._rank_counter
            self._sorted_headwords = None
        logger.debug(f'register: {okuri_class} {word} -> {candidate}')
        if self.immediately_rw:
            return self.save()
        return True

    def purge(self, okuri_class, word, candidate):
        with self._lock:
            entry = self._entries[okuri_class].get(word)
            if entry and candidate in entry:
                entry.remove(candidate)
                if not entry:
                    del self._entries[okuri_class][word]
            ranks = self._ranks.get(word)
            if ranks:
                ranks.pop(util.strip_annotation(candidate), None)
                if not ranks:
                    del self._ranks[word]
            self._sorted_headwords = None
        if self.immediately_rw:
            return self.save()
        return True

    def save(self):
        """
        Write the dictionary and the rank file.

        Returns:
            bool: True if saved (or there is nothing to save to), False otherwise
        """
        try:
            if self.path:
                self._write_dictionary()
            if self.rank_path:
                self._write_ranks()
        except RegistrationFailure as e:
            self.last_error = e
            logger.warning(f'User dictionary kept in memory only: {e}')
            return False
        self.last_error = None
        return True

    def _write_dictionary(self):
        lines = [OKURI_ARI_MARKER]
        for word, candidates in self._entries[OKURI_ARI].items():
            lines.append(util.format_skk_dictionary_line(word, candidates))
        lines.append(OKURI_NASI_MARKER)
        for word, candidates in sorted(self._entries[OKURI_NASI].items()):
            lines.append(util.format_skk_dictionary_line(word, candidates))
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                f.write('\n'.join(lines) + '\n')
        except OSError as e:
            raise RegistrationFailure(f'cannot write {self.path}: {e}') from e

    def _write_ranks(self):
        try:
            directory = os.path.dirname(self.rank_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.rank_path, 'wb') as f:
                f.write(orjson.dumps(self._ranks, option=orjson.OPT_INDENT_2))
        except OSError as e:
            raise RegistrationFailure(f'cannot write {self.rank_path}: {e}') from e


def merge_candidates(groups, rank=None):
    """
    Merge candidate lists from several sources into one list.

    Sources are concatenated in order, then candidates with a recorded rank
    float to the front (higher rank first; equal ranks keep their first-seen
    order), and finally duplicates are dropped keeping the first occurrence.
    Two candidates that differ only in their annotation are duplicates.

    Args:
        groups: iterable of candidate lists
        rank: callable candidate -> int, 0 meaning "never used"

    Returns:
        list: merged candidates
    """
    combined = [c for group in groups for c in group]
    if rank is not None:
        combined = sorted(combined, key=lambda c: -rank(c))
    seen = set()
    result = []
    for candidate in combined:
        surface = util.strip_annotation(candidate)
        if surface in seen:
            continue
        seen.add(surface)
        result.append(candidate)
    return result


class Library:
    """
    The merged candidate store (DictionaryStore).

    Lookup order: global dictionaries (in configured order), the SKK server,
    then the user dictionary. The user dictionary's ranks reorder the
    combined list, so only used candidates move ahead of global ones.
    """

    def __init__(self, global_dictionaries=None, user_dictionary=None, server=None):
        self.global_dictionaries = list(global_dictionaries or [])
        self.user_dictionary = user_dictionary if user_dictionary is not None else UserDictionary()
        self.server = server

    def _rank_for(self, word):
        return lambda candidate: self.user_dictionary.rank(word, candidate)

    def lookup(self, okuri_class, word):
        """
        Candidates for `word` in the given conjugation class.

        Args:
            okuri_class: OKURI_ARI or OKURI_NASI
            word: The headword, e.g. "かんじ" or "かk"

        Returns:
            list: candidates, most recently used first
        """
        groups = [d.lookup(okuri_class, word) for d in self.global_dictionaries]
        if self.server is not None:
            groups.append(self.server.lookup(okuri_class, word))
        groups.append(self.user_dictionary.lookup(okuri_class, word))
        candidates = merge_candidates(groups, self._rank_for(word))
        logger.debug(f'lookup({okuri_class}, "{word}") → {len(candidates)} candidates')
        return candidates

    def register(self, okuri_class, word, candidate):
        """Register a committed or user-supplied candidate. Never raises on write failure."""
        return self.user_dictionary.register(okuri_class, word, candidate)

    def purge(self, okuri_class, word, candidate):
        return self.user_dictionary.purge(okuri_class, word, candidate)

    def completion(self, prefix, feed='', table=None):
        """
        Headwords starting with `prefix` and their candidates, for
        incremental completion.

        When `feed` holds keystrokes that are not yet kana, the prefix is
        expanded with every kana the feed could still become, e.g. prefix
        "あ" with feed "k" is searched as "あか", "あき", "あく", ...

        Args:
            prefix: kana typed so far
            feed: pending romaji
            table: KanaTable used to expand `feed`

        Returns:
            list: (headword, candidates) tuples
        """
        if feed and table is not None:
            prefixes = []
            for _, output in table.alternatives(feed):
                expanded = prefix + output.kana
                if expanded not in prefixes:
                    prefixes.append(expanded)
        else:
            prefixes = [prefix]

        found = {}
        dictionaries = self.global_dictionaries + [self.user_dictionary]
        for p in prefixes:
            for d in dictionaries:
                for headword in d.headwords(p):
                    found.setdefault(headword, []).append(d.lookup(OKURI_NASI, headword))
        if self.server is not None:
            for headword, candidates in self.server.completion(prefix, feed, table):
                found.setdefault(headword, []).append(candidates)

        return [(headword, merge_candidates(groups, self._rank_for(headword)))
                for headword, groups in found.items()]

    def ranks(self, prefix):
        return self.user_dictionary.ranks(prefix)

    def save(self):
        return self.user_dictionary.save()

    def close(self):
        self.save()
        if self.server is not None:
            self.server.close()


def build_library(config):
    """
    Build a Library from the configuration.

    Args:
        config: configuration dict (see util.DEFAULT_CONFIG)

    Returns:
        Library
    """
    global_dictionaries = []
    for item in config.get('global_dictionaries', []):
        path, encoding = (item[0], item[1]) if isinstance(item, (list, tuple)) else (item, None)
        global_dictionaries.append(SkkDictionary.load(util.expand_path(path), encoding or None))

    user_dictionary = UserDictionary(
        path=util.expand_path(config.get('user_dictionary')),
        rank_path=util.expand_path(config.get('completion_rank_file')),
        immediately_rw=config.get('immediately_dictionary_rw', True),
    ).load()

    server = None
    server_config = config.get('skk_server', {})
    if server_config.get('enabled'):
        server = SkkServerClient(
            host=server_config.get('host', '127.0.0.1'),
            port=server_config.get('port', 1178),
            request_encoding=server_config.get('request_encoding', 'euc-jp'),
            response_encoding=server_config.get('response_encoding', 'euc-jp'),
        )

    logger.info(f'Library initialized with {len(global_dictionaries)} global dictionaries'
                f'{", SKK server " + server.host + ":" + str(server.port) if server else ""}')
    return Library(global_dictionaries, user_dictionary, server)


class LibraryLoader:
    """
    Build the Library at most once, possibly on a background thread.

    get() blocks until the single load has finished; concurrent callers wait
    on the same lock instead of loading twice. A failed load is logged and
    replaced by an empty Library so conversion keeps working.
    """

    def __init__(self, factory):
        self._factory = factory
        self._lock = threading.Lock()
        self._library = None

    def start(self):
        """Start loading on a daemon thread."""
        thread = threading.Thread(target=self.get, daemon=True)
        thread.start()
        return thread

    def is_ready(self):
        return self._library is not None

    def get(self):
        with self._lock:
            if self._library is None:
                try:
                    self._library = self._factory()
                except Exception as e:
                    logger.error(f'Library loading failed: {e}')
                    self._library = Library()
            return self._library

    def close(self):
        with self._lock:
            if self._library is not None:
                self._library.close()
                self._library = None
