import logging
from typing import Dict, Type

import pluggy

from couchdump.config import Config
from couchdump.core.sources._base import Source
from couchdump.core.sources.http_source import HttpSource
from couchdump.core.sources.local_source import LocalSource
from couchdump.exceptions import SourceNotFoundException
from couchdump.utils import is_network_identifier

logger = logging.getLogger('couchdump')

hookimpl = pluggy.HookimplMarker("couchdump")


@hookimpl
def define_sources(source_dict: Dict[str, Type[Source]]):
    source_dict["http"] = HttpSource
    source_dict["local"] = LocalSource


def get_source_type(identifier: str) -> str:
    if is_network_identifier(identifier):
        return "http"
    return "local"


def get_source(hook, config: Config, http_session=None) -> Source:
    """Build the source for config.database from all sources registered via the define_sources hook"""

    available_sources = {}
    hook.define_sources(source_dict=available_sources)
    source_type = get_source_type(config.database)
    source_cls = available_sources.get(source_type)
    if source_cls is None:
        err_msg = f"Cannot find a source of type '{source_type}' for {config.database}\n" \
                  f"Supported sources: {', '.join(available_sources.keys())}"
        logger.error(err_msg)
        raise SourceNotFoundException(err_msg)

    if source_type == "http":
        return source_cls(
            config.source_url(),
            cookie=config.cookie,
            lenient_cookie_auth=config.lenient_cookie_auth,
            timeout=config.http_timeout,
            http_session=http_session,
        )
    return source_cls(config.database)
