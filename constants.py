# Host setting holding the serialized OAuth token
SETTING_ACCESS_TOKEN = "access_token"

# Deep link action delivered by the host after the Spotify redirect
DEEP_LINK_AUTH_ACTION = "spotify-auth"

DEFAULT_ICON_PATH = "images/app.png"

COMMAND_AUTH = "auth"
COMMAND_DEVICES = "devices"
COMMAND_NEXT = "next"
COMMAND_QUEUE = "queue"
COMMAND_RECENT = "recent"
COMMAND_SEARCH = "search"
COMMAND_ME = "me"

PLUGIN_COMMANDS = (
    COMMAND_AUTH,
    COMMAND_DEVICES,
    COMMAND_NEXT,
    COMMAND_QUEUE,
    COMMAND_RECENT,
    COMMAND_SEARCH,
    COMMAND_ME,
)
