"""Entry point for retype CLI client."""

import argparse
import sys

from cli.api_client import RetypeAPIClient
from cli.console import ConsoleUI


def main():
    parser = argparse.ArgumentParser(description='Retype - sentence typing practice')
    parser.add_argument(
        '--server',
        default='http://localhost:8000',
        help='Server URL (default: http://localhost:8000)'
    )
    parser.add_argument('--file', help='Text file with practice material')
    parser.add_argument('--resume', metavar='HASH', help='Resume saved progress for a content hash')
    parser.add_argument('--random', action='store_true', help='Practice sentences in random order')
    parser.add_argument('--split-pattern', default='', help='Regex to split the text on')
    parser.add_argument('--filter-pattern', default='', help='Regex to rewrite before splitting')
    parser.add_argument('--filter-replacement', default='', help='Replacement for --filter-pattern')
    parser.add_argument('--segment', action='store_true', help='Split the text into sentences')
    args = parser.parse_args()

    text = None
    if args.file:
        with open(args.file, 'r', encoding='utf-8') as f:
            text = f.read()

    client = RetypeAPIClient(base_url=args.server)
    ui = ConsoleUI(client)

    try:
        ui.run(
            text=text,
            resume_hash=args.resume,
            randomize=args.random,
            split_pattern=args.split_pattern,
            filter_pattern=args.filter_pattern,
            filter_replacement=args.filter_replacement,
            use_segmenter=args.segment
        )
    except (KeyboardInterrupt, EOFError):
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
