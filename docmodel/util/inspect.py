import inspect
from functools import lru_cache
from typing import Mapping


@lru_cache(100)
def get_handler_settings_defaults(handler_cls: type) -> dict:
    """ Get the settings a handler accepts: the arguments of its __init__() that have default values """
    parameters = inspect.signature(handler_cls.__init__).parameters
    return {
        name: p.default
        for name, p in parameters.items()
        if p.default is not p.empty and p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    }


def pluck_handler_settings(settings: Mapping, handler_cls: type) -> dict:
    """ Pluck the settings a handler needs from a dict; fill in the defaults for those not provided """
    return {name: settings.get(name, default)
            for name, default in get_handler_settings_defaults(handler_cls).items()}
