from .settings import QuerySettingsDict, QuerySettingsHandler, ModelSettingsDict
from .inspect import pluck_handler_settings
from .reusable import Reusable
