import questionary

from constants import PLUGIN_COMMANDS
from launcher.host import LocalHost
from launcher.models import Context, parse_query
from launcher.plugin import SpotifyPlugin
from utils.logger import log_error, log_info, log_warning

BACK = "⬅ Back"


def result_title(result) -> str:
    """One-line rendering of a result for a select prompt."""
    title = result.title
    if result.group:
        title = f"[{result.group}] {title}"
    if result.sub_title:
        title = f"{title} — {result.sub_title}"
    return title


def choose_action(result):
    """Pick an action of a result; a single action is used directly."""
    if not result.actions:
        log_info("Nothing to do for this result.")
        return None
    if len(result.actions) == 1:
        return result.actions[0]

    choice = questionary.select(
        f"🎵 {result.title}",
        choices=[questionary.Choice(title=a.name, value=a) for a in result.actions] + [BACK],
    ).ask()
    return None if choice in (None, BACK) else choice


def complete_auth_menu(host: LocalHost) -> None:
    """Let the user paste the deep link the browser was redirected to."""
    url = questionary.text(
        "Paste the link Spotify redirected you to (leave empty to skip):"
    ).ask()
    if not url:
        return
    params = host.dispatch_deep_link(url.strip())
    if not params.get("code"):
        log_warning("That link did not contain an authorization code.")


def launcher_menu(plugin: SpotifyPlugin, host: LocalHost, ctx: Context) -> None:
    """Terminal stand-in for the launcher: type a query, pick a result, run an action."""
    trigger = plugin.trigger_keyword
    default_text = f"{trigger} "

    while True:
        text = questionary.text("🔎 Query (empty to exit):", default=default_text).ask()
        default_text = f"{trigger} "
        if text is None or not text.strip():
            break

        query = parse_query(text, trigger_keyword=trigger, commands=PLUGIN_COMMANDS)
        results = plugin.query(ctx, query)
        if not results:
            log_info("No results.")
            continue

        choice = questionary.select(
            f"{len(results)} result(s)",
            choices=[questionary.Choice(title=result_title(r), value=r) for r in results] + [BACK],
        ).ask()
        if choice in (None, BACK):
            continue

        action = choose_action(choice)
        if action is None:
            continue

        try:
            action()
        except Exception as e:
            log_error(f"Action '{action.name}' failed: {e}")
            continue

        if action.name == "Auth":
            complete_auth_menu(host)

        pending = host.take_pending_query()
        if pending is not None:
            default_text = pending.query_text
        elif action.prevent_hide_after_action:
            default_text = text
