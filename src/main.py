#!/usr/bin/env python3
"""
main.py - Command-line interface for the conversion engine
変換エンジンのコマンドラインインターフェース

Usage:
    python main.py convert ";nihongo "          # → 日本語
    python main.py convert -d SKK-JISYO.L "Kanji "
    python main.py server かんじ
    python main.py server --completion かん
"""

import argparse
import logging
import sys

from context import HostEditor
from engine import SkkEngine
from skk_server import SkkServerClient
import util
from util import OKURI_NASI

logger = logging.getLogger(__name__)


def setup_logging(verbose=False, log_file=None):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        filename=log_file,
        level=level,
        format='%(asctime)s %(levelname)-8s %(message)s',
        datefmt='%H:%M:%S'
    )


class ConsoleHost(HostEditor):
    """Messages go to stderr; word registration is read from stdin when interactive."""

    def __init__(self, interactive=False):
        self.interactive = interactive

    def echo(self, message):
        print(message, file=sys.stderr)

    def input(self, prompt):
        if not self.interactive:
            return ''
        return input(prompt)


def apply_output(buffer, output):
    """Apply handle() output (text with backspaces) to a list of characters."""
    for c in output:
        if c == '\b':
            if buffer:
                buffer.pop()
        elif c != '\x1b':
            buffer.append(c)
    return buffer


def cmd_convert(args):
    """
    Feed a key string through a session and print the resulting text.
    キー列をセッションに入力し、結果のテキストを表示。
    """
    config, _ = util.get_config_data(args.config)
    if args.dictionary:
        config['global_dictionaries'] = list(args.dictionary)
    if args.user_dictionary is not None:
        config['user_dictionary'] = args.user_dictionary
        config['completion_rank_file'] = args.user_dictionary + '.rank.json' if args.user_dictionary else ''
    config['use_popup'] = True

    logger.debug(f'convert: {args.keys!r}')
    engine = SkkEngine(config, host=ConsoleHost(args.interactive))
    engine.enable()
    buffer = []
    for key in args.keys:
        apply_output(buffer, engine.handle(key))
    apply_output(buffer, engine.handle('', function_name='kakutei'))
    engine.close()
    print(''.join(buffer))
    return 0


def cmd_server(args):
    """
    Query an SKK server directly.
    SKKサーバーに直接問い合わせ。
    """
    client = SkkServerClient(host=args.host, port=args.port,
                             request_encoding=args.encoding, response_encoding=args.encoding)
    with client:
        if args.completion:
            for headword, candidates in client.completion(args.word):
                print(f'{headword} /{"/".join(candidates)}/')
        else:
            candidates = client.lookup(OKURI_NASI, args.word)
            if not candidates:
                print(f'{args.word}: not found', file=sys.stderr)
                return 1
            print(f'{args.word} /{"/".join(candidates)}/')
    return 0


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="SKK-style kana-kanji conversion engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert romaji input (";" or an uppercase letter starts a headword)
  python main.py convert ";nihongo "

  # Use a specific global dictionary
  python main.py convert -d /usr/share/skk/SKK-JISYO.L "Kanji "

  # Ask an SKK server (skkserv protocol)
  python main.py server --host 127.0.0.1 --port 1178 かんじ
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')
    parser.add_argument('--log-file', default=None,
                        help='Write the log to this file instead of stderr')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Convert command
    convert_parser = subparsers.add_parser('convert', help='Convert a key string')
    convert_parser.add_argument('keys', help='Keys to type, e.g. ";nihongo "')
    convert_parser.add_argument('-c', '--config', default=None,
                                help='Path to config.json (default: ~/.config/skk-engine/config.json)')
    convert_parser.add_argument('-d', '--dictionary', action='append',
                                help='Global SKK dictionary (repeatable)')
    convert_parser.add_argument('-u', '--user-dictionary', default=None,
                                help='User dictionary path ("" for none)')
    convert_parser.add_argument('-i', '--interactive', action='store_true',
                                help='Ask for new words on stdin when a headword has no candidates')

    # Server command
    server_parser = subparsers.add_parser('server', help='Query an SKK server')
    server_parser.add_argument('word', help='Headword (or prefix with --completion)')
    server_parser.add_argument('--host', default='127.0.0.1', help='Server host (default: 127.0.0.1)')
    server_parser.add_argument('--port', type=int, default=1178, help='Server port (default: 1178)')
    server_parser.add_argument('-e', '--encoding', default='euc-jp', choices=sorted(util.ENCODINGS),
                               help='Request/response encoding (default: euc-jp)')
    server_parser.add_argument('--completion', action='store_true',
                               help='List headwords starting with WORD and their candidates')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose, args.log_file)

    if args.command == 'convert':
        return cmd_convert(args)
    elif args.command == 'server':
        return cmd_server(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
