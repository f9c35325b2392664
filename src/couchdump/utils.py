import re
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlsplit, urlunsplit

SPLIT_INDEX_WIDTH = 8

_EXTENSION = re.compile(r'\.[^.]+$')
_LEADING_INT = re.compile(r'^\s*(\d+)')


def split_file_name(output_file: Union[str, Path], index: int) -> str:
    """Name of the index-th split file derived from the base output path.

    dump.txt -> dump_00000002.txt, dump -> dump_00000000
    """
    output_file = str(output_file)
    num_str = str(index).zfill(SPLIT_INDEX_WIDTH)
    match = _EXTENSION.search(output_file)
    if match:
        return output_file[:match.start()] + '_' + num_str + match.group(0)
    return output_file + '_' + num_str


def parse_seq(seq: Any) -> Optional[int]:
    """Numeric position of a change-feed sequence value.

    CouchDB 1.x uses plain integers, 2.x+ opaque strings such as
    "12-g1AAAA..." whose leading integer is the position.
    """
    if seq is None or isinstance(seq, bool):
        return None
    if isinstance(seq, int):
        return seq
    if isinstance(seq, float):
        return int(seq)
    if isinstance(seq, (list, tuple)) and seq:
        # BigCouch style [n, "opaque"]
        return parse_seq(seq[0])
    if isinstance(seq, str):
        match = _LEADING_INT.match(seq)
        if match:
            return int(match.group(1))
    return None


NETWORK_SCHEMES = ("http", "https")


def is_network_identifier(identifier: str) -> bool:
    """True for identifiers addressing a database over HTTP(S), in any letter case"""
    parsed = urlsplit(identifier)
    return parsed.scheme.lower() in NETWORK_SCHEMES and bool(parsed.netloc)


def redact_url(url: str) -> str:
    """Replace the password of a URL's userinfo with '***' for logging"""
    parsed = urlsplit(url)
    if not parsed.password:
        return url
    netloc = parsed.netloc.rsplit('@', 1)[1]
    user = parsed.username or ''
    return urlunsplit((parsed.scheme, f"{user}:***@{netloc}", parsed.path, parsed.query, parsed.fragment))
