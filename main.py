import json

from config import DEFAULT_CONFIG, load_config, save_config, validate_config
from launcher.host import LocalHost, SettingsStore
from launcher.models import Context, PluginInitParams
from launcher.plugin import SpotifyPlugin
from menus.launcher_menu import launcher_menu
from utils.logger import setup_logging, log_info, log_error, log_warning


def main() -> int:
    setup_logging()

    try:
        config = load_config()
    except FileNotFoundError:
        log_info("Config file not found; writing defaults to config.json")
        config = dict(DEFAULT_CONFIG)
        save_config(config)
    except json.JSONDecodeError as e:
        log_error(f"Config file contains invalid JSON: {e}")
        return 1

    setup_logging(config.get("log_level", "INFO"))

    is_valid, errors = validate_config(config)
    if not is_valid:
        for error in errors:
            log_error(error)
        return 1

    host = LocalHost(SettingsStore(config.get("settings_file") or None))
    plugin = SpotifyPlugin(config)
    ctx = Context()
    plugin.init(ctx, PluginInitParams(api=host))

    if not plugin.session.is_token_valid():
        log_warning(f"Not authenticated yet; run '{plugin.trigger_keyword} auth' first.")

    try:
        launcher_menu(plugin, host, ctx)
    except KeyboardInterrupt:
        pass
    finally:
        plugin.close()

    log_info("Exiting program...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
