#!/usr/bin/env python3
"""
skk_server.py - Client for the SKK dictionary server protocol (skkserv)

================================================================================
PROTOCOL / プロトコル
================================================================================

One TCP connection, one request at a time:

    request                      response
    ───────────────────────      ─────────────────────────────
    "1" + headword + " "         "1/候補1/候補2/\\n"   found
                                 "4" ...  "\\n"        not found
    "4" + prefix + " "           "1/見出し1/見出し2/\\n"
    "0"                          (none; the connection is closed)

The first and last "/"-separated fields of a response are dropped and the
fields in between are the result. Requests are encoded with the configured
request encoding and responses decoded with the response encoding (most
servers speak EUC-JP).

A server that cannot be reached never breaks conversion: every failure is
logged, the connection is dropped and the call returns an empty list. The
next call tries to connect again.
"""

import codecs
import logging
import socket
import threading

from errors import ServerUnavailable
from kana import KanaOutput
import util

logger = logging.getLogger(__name__)

OPCODE_DISCONNECT = '0'
OPCODE_LOOKUP = '1'
OPCODE_COMPLETION = '4'

RECV_SIZE = 4096


def encode(text, encoding):
    codec = util.python_codec(encoding)
    return text.encode(codec or 'utf-8')


def parse_response(line):
    """
    Split a response line into its result fields.

    Args:
        line: decoded response line, with or without its trailing newline

    Returns:
        list: the interior "/"-separated fields; [] for a not-found ("4") response
    """
    line = line.rstrip('\r\n')
    if not line or line[0] == '4':
        return []
    return line.split('/')[1:-1]


class SkkServerClient:
    """
    Query a remote SKK dictionary server.

    The connection is opened lazily on the first request and reused.
    """

    def __init__(self, host='127.0.0.1', port=1178, request_encoding='euc-jp',
                 response_encoding='euc-jp', timeout=None):
        self.host = host
        self.port = port
        self.request_encoding = request_encoding
        self.response_encoding = response_encoding
        self.timeout = timeout
        self._sock = None
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def connect(self):
        try:
            self._sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
        except OSError as e:
            self._sock = None
            raise ServerUnavailable(f'cannot connect to {self.host}:{self.port}: {e}') from e
        logger.info(f'Connected to SKK server {self.host}:{self.port}')

    def is_connected(self):
        return self._sock is not None

    def _drop(self):
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                logger.debug(f'Error while closing SKK server socket: {e}')
        self._sock = None

    def _read_line(self):
        codec = util.python_codec(self.response_encoding)
        if codec is None:
            return self._read_line_auto()
        decoder = codecs.getincrementaldecoder(codec)(errors='replace')
        text = ''
        while '\n' not in text:
            data = self._sock.recv(RECV_SIZE)
            if not data:
                raise ServerUnavailable('connection closed by the SKK server')
            text += decoder.decode(data)
        return text[:text.index('\n') + 1]

    def _read_line_auto(self):
        data = b''
        while b'\n' not in data:
            chunk = self._sock.recv(RECV_SIZE)
            if not chunk:
                raise ServerUnavailable('connection closed by the SKK server')
            data += chunk
        data = data[:data.index(b'\n') + 1]
        for enc in util.FALLBACK_ENCODINGS:
            try:
                return data.decode(enc)
            except UnicodeDecodeError:
                continue
        return data.decode('utf-8', errors='replace')

    def _request(self, opcode, text):
        with self._lock:
            try:
                if self._sock is None:
                    self.connect()
                self._sock.sendall(encode(f'{opcode}{text} ', self.request_encoding))
                line = self._read_line()
            except (OSError, ServerUnavailable) as e:
                logger.warning(f'SKK server request "{opcode}{text}" failed: {e}')
                self._drop()
                return []
        return parse_response(line)

    def lookup(self, okuri_class, word):
        """Candidates for `word`. The server does not distinguish okuri classes."""
        result = self._request(OPCODE_LOOKUP, word)
        logger.debug(f'SKK server lookup "{word}" → {len(result)} candidates')
        return result

    def headwords(self, prefix):
        """Headwords (見出し) starting with `prefix`."""
        return self._request(OPCODE_COMPLETION, prefix)

    def completion(self, prefix, feed='', table=None):
        """
        Completion candidates from the server.

        One prefix query is sent for `prefix` itself and, when `feed` holds
        unconverted keystrokes, one more for every kana the feed could still
        produce (an explicit fan-out: each alternative is a network round
        trip). Results are concatenated in table order and every headword is
        then looked up.

        Returns:
            list: (headword, candidates) tuples
        """
        headwords = list(self.headwords(prefix))
        if feed and table is not None:
            for _, output in table.alternatives(feed):
                if isinstance(output, KanaOutput):
                    headwords.extend(self.headwords(prefix + output.kana))

        result = []
        seen = set()
        for headword in headwords:
            if headword in seen:
                continue
            seen.add(headword)
            result.append((headword, self.lookup(util.OKURI_NASI, headword)))
        return result

    def close(self):
        """Send the disconnect opcode and close the socket."""
        with self._lock:
            if self._sock is None:
                return
            try:
                self._sock.sendall(encode(OPCODE_DISCONNECT, self.request_encoding))
            except OSError as e:
                logger.debug(f'SKK server disconnect failed: {e}')
            self._drop()
            logger.info(f'Disconnected from SKK server {self.host}:{self.port}')
