from typing import Dict, Type

import pluggy

from couchdump.core.sources._base import Source

hookspec = pluggy.HookspecMarker("couchdump")


@hookspec
def define_sources(source_dict: Dict[str, Type[Source]]):
    """Defines what kinds of Source Database couchdump can export from
    """
    ...
