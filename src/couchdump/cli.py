#!/usr/bin/env python3
"""
Represents the entrypoint for command line tools.
"""

import argparse
import os
import sys

from couchdump.config import Config
from couchdump.core import CouchDump, DumpFactory, logger
from couchdump.exceptions import ConfigurationError, CouchDumpError

EPILOG = """examples:
  couchdump http://localhost:5984/mydb > dump.txt
      Dump from the "mydb" CouchDB to dump.txt
  couchdump /path/to/mydb.sqlite > dump.txt
      Dump from a SQLite-based PouchDB to dump.txt
  couchdump /path/to/mydb.sqlite -o dump.txt
      Dump to the specified file instead of stdout
  couchdump /path/to/mydb.sqlite -o dump.txt -s 100
      Dump every 100 documents to dump_00000000.txt, dump_00000001.txt, etc.
  couchdump http://example.com/mydb -u myUsername -p myPassword > dump.txt
      Specify a CouchDB username and password if it's protected
"""


def get_argparser():
    argument_parser = argparse.ArgumentParser(
        prog='couchdump',
        description='Dump a CouchDB or PouchDB database to line-delimited JSON',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    argument_parser.add_argument(
        'database',
        nargs='?',
        default=None,
        help='Database URL or filepath',
    )
    argument_parser.add_argument(
        '-o', '--output-file',
        dest='output_file',
        help='output file (else will dump to stdout)',
    )
    argument_parser.add_argument(
        '-u', '--username',
        dest='username',
        help="username for the CouchDB database (if it's protected)",
    )
    argument_parser.add_argument(
        '-p', '--password',
        dest='password',
        help="password for the CouchDB database (if it's protected)",
    )
    argument_parser.add_argument(
        '-c', '--cookie',
        dest='cookie',
        help="cookie for the CouchDB database (if it's protected)",
    )
    argument_parser.add_argument(
        '-s', '--split',
        dest='split',
        type=int,
        help='split into multiple files, for every n docs',
    )
    argument_parser.add_argument(
        '-b', '--batch-size',
        dest='batch_size',
        type=int,
        help='documents per change record (ignored with --split)',
    )
    argument_parser.add_argument(
        '--no-progress',
        dest='progress',
        action='store_false',
        default=True,
        help='do not show a progress bar',
    )
    argument_parser.add_argument(
        '-l', '--level',
        type=str,
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        dest='log_level',
        default=os.getenv("COUCHDUMP_LOG_LEVEL", "WARNING"),
        help="Log level",
    )
    return argument_parser


def build_config(args) -> Config:
    return Config.from_env(
        database=args.database,
        output_file=args.output_file,
        username=args.username,
        password=args.password,
        cookie=args.cookie,
        split=args.split,
        batch_size=args.batch_size,
        progress=args.progress,
        log_level=args.log_level,
    )


def dump(config: Config) -> int:
    try:
        logger.setLevel(config.log_level)
    except ValueError:
        print(f"Log level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG. You entered {config.log_level}",
              file=sys.stderr)
        return 1

    try:
        config.validate()
    except ConfigurationError as e:
        print(e.message, file=sys.stderr)
        if e.details:
            print(e.details, file=sys.stderr)
        return 1

    try:
        summary = CouchDump(DumpFactory(config)).export()
    except CouchDumpError as e:
        print(e.message, file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("unexpected error")
        print(f"unexpected error\n{e!r}", file=sys.stderr)
        return 1

    logger.info(f"Dumped {summary.docs} docs in {summary.records} records to {', '.join(summary.files)}")
    return 0


def main(args=None):

    arg_parser = get_argparser()

    args = arg_parser.parse_args(args)

    sys.exit(dump(build_config(args)))


if __name__ == '__main__':
    main()
