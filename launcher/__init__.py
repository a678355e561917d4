from launcher.host import LocalHost, PublicAPI, SettingsStore, parse_deep_link
from launcher.models import Action, ChangeQueryParam, Context, Icon, PluginInitParams, Preview, Query, Result, parse_query
from launcher.plugin import SpotifyPlugin

__all__ = [
    "LocalHost",
    "PublicAPI",
    "SettingsStore",
    "parse_deep_link",
    "Action",
    "ChangeQueryParam",
    "Context",
    "Icon",
    "PluginInitParams",
    "Preview",
    "Query",
    "Result",
    "parse_query",
    "SpotifyPlugin",
]
