from typing import Iterable, Mapping, Union

from .inspect import pluck_handler_settings
from ..exc import DisabledError


class QuerySettingsDict(dict):
    """ DocQuery settings container.

        Is only used for nice autocompletion and documentation purposes only! :)

        The keyword settings in this object are just plain kwargs names
        for every handler object's __init__ method,
        which are fed to subclasses of QueryHandlerBase by QuerySettingsHandler.

        In addition to that, there are '<handler-name>_enabled' settings,
        that can enable or disable a handler.
    """

    def __init__(self,
                 # --- project
                 default_projection: Union[str, Iterable[str], None] = None,
                 # --- filter
                 force_filter: Union[str, Iterable[str], None] = None,
                 # --- limit
                 default_limit: Union[int, None] = 100,
                 max_items: Union[int, None] = None,
                 # --- enabled handlers?
                 count_enabled: bool = True,
                 filter_enabled: bool = True,
                 limit_enabled: bool = True,
                 project_enabled: bool = True,
                 sort_enabled: bool = True,
                 ):
        """ `DocQuery` has a few settings that let you configure the way queries are made.

        Args:
            default_projection: The list of fields to return when the user has not provided a projection.
            force_filter: Filter expression(s) that are AND-ed to every query.
                Use it to limit the user to a subset of the collection.
            default_limit: The limit to use when the user has provided none. `None` for no limit.
            max_items: The maximum number of items that can be loaded with one query.
                The user can never go any higher than that.
            count_enabled: Enable the 'count' handler
            filter_enabled: Enable the 'filter' handler
            limit_enabled: Enable the 'skip' & 'limit' handler
            project_enabled: Enable the 'project' handler
            sort_enabled: Enable the 'sort' handler
        """
        super().__init__(
            default_projection=default_projection,
            force_filter=force_filter,
            default_limit=default_limit,
            max_items=max_items,
            count_enabled=count_enabled,
            filter_enabled=filter_enabled,
            limit_enabled=limit_enabled,
            project_enabled=project_enabled,
            sort_enabled=sort_enabled,
        )


class ModelSettingsDict(QuerySettingsDict):
    """ Model settings container: DocQuery settings + Model settings """

    def __init__(self, query_defaults: Union[Mapping, None] = None, **query_settings):
        """ Settings for the Model

        Args:
            query_defaults: Defaults for every Query Object: the user's Query Object will be merged into it.
            query_settings: Settings for the DocQuery; see QuerySettingsDict
        """
        super().__init__(**query_settings)
        self['query_defaults'] = query_defaults


class QuerySettingsHandler:
    """ Settings keeper for DocQuery

        This is essentially a helper which will feed the correct kwargs to every handler.

        Handlers receive settings as kwargs to their __init__() methods,
        and those kwargs have unique names.

        This class will collect all settings as a single, flat dict,
        and give each handler only the settings it wants.
    """

    def __init__(self, settings: dict):
        """ Store the settings for every handler

            :param settings: dict of handler kwargs
        """
        assert isinstance(settings, dict)

        #: Settings dict
        self._settings = settings  # we don't make a copy, because we don't modify it

        #: Handler names
        self._handler_names = set()

        #: all kwargs names (to identify invalid ones)
        self._all_known_kwargs_names = set()

        #: disabled handler names
        self._disabled_handlers = set()

    def get_settings(self, handler_name: str, handler_cls: type) -> dict:
        """ Get settings for the given handler

            Every time a class is given us, we analyze its __init__() method in order to know its kwargs and its default values.
            Then, we take the matching keys from the settings dict, we take defaults from the argument defaults,
            and make it all into `kwargs` that will be given to the class.

            In addition to that, if the settings contain `<handler_name>_enabled=False`, then it means it's disabled.
        """
        # See if it's actually disabled
        if not self._settings.get('{}_enabled'.format(handler_name), True):
            self._disabled_handlers.add(handler_name)

        # Analyze a function, pluck the arguments that it needs
        kwargs = pluck_handler_settings(self._settings, handler_cls)

        # Store the data that we'll need
        self._handler_names.add(handler_name)
        self._all_known_kwargs_names.update(kwargs.keys())

        # Done
        return kwargs  # for the handler's __init__()

    def is_handler_enabled(self, handler_name: str) -> bool:
        """ Test if the handler is enabled in the configuration """
        return handler_name not in self._disabled_handlers

    def raise_if_not_handler_enabled(self, collection: str, handler_name: str):
        """ Raise an error if the handler is not enabled """
        if not self.is_handler_enabled(handler_name):
            raise DisabledError('Query handler "{}" is disabled for "{}"'
                                .format(handler_name, collection))

    def raise_if_invalid_handler_settings(self, docquery):
        """ Check whether there were any typos in setting names

            After all handlers were initialized, we've had a chance to analyze all their keyword arguments.
            Now, we have the information about them, and we can check whether every kwarg was actually used.
            If not, there must be a typo.

            :raises: KeyError: Invalid settings provided
        """
        # Known keys
        handler_names = set('{}_enabled'.format(handler_name)
                            for handler_name in self._handler_names)
        all_known_keys = handler_names | self._all_known_kwargs_names

        # Result: unknown keys
        invalid_keys = set(self._settings.keys()) - all_known_keys

        # Raise?
        if invalid_keys:
            raise KeyError('Invalid settings were provided for {!r}: {}'
                           .format(docquery, ','.join(sorted(invalid_keys))))

    def __repr__(self):
        return repr('{}({})'.format(self.__class__.__name__, self._settings))
