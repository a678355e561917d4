import functools
import webbrowser
from typing import Any, Callable, Dict, List, Optional

import httpx

from constants import COMMAND_AUTH, DEEP_LINK_AUTH_ACTION
from launcher.handlers import dispatch
from launcher.host import PublicAPI
from launcher.models import Action, ChangeQueryParam, Context, PluginInitParams, Query, Result
from spotify_api.refresh_scheduler import RefreshScheduler
from spotify_api.session import SpotifySession
from spotify_api.token_manager import TokenManager


class HostSettings:
    """Exposes the host's settings calls as the key-value store TokenManager expects."""

    def __init__(self, api: PublicAPI, ctx: Context):
        self.api = api
        self.ctx = ctx

    def get(self, key: str, default: str = "") -> str:
        return self.api.get_setting(self.ctx, key) or default

    def set(self, key: str, value: str) -> None:
        self.api.save_setting(self.ctx, key, value)


class SpotifyPlugin:
    """Launcher plugin life-cycle: ``init`` once, then ``query`` per keystroke."""

    def __init__(
        self,
        config: Dict[str, Any],
        *,
        transport: Optional[httpx.BaseTransport] = None,
        opener: Callable[[str], Any] = webbrowser.open,
    ):
        self.config = config or {}
        self.transport = transport
        self.opener = opener
        self.api: Optional[PublicAPI] = None
        self.session: Optional[SpotifySession] = None
        self.scheduler: Optional[RefreshScheduler] = None

    @property
    def trigger_keyword(self) -> str:
        return str(self.config.get("trigger_keyword", "spotify"))

    def init(self, ctx: Context, init_params: PluginInitParams) -> None:
        self.api = init_params.api
        self.session = SpotifySession(
            self.config,
            token_manager=TokenManager(HostSettings(self.api, ctx)),
            transport=self.transport,
        )

        if self.scheduler is not None:
            self.scheduler.stop()
        self.scheduler = RefreshScheduler(
            self.session.refresh_if_needed,
            interval_seconds=int(self.config.get("token_refresh_interval", 60)),
        )
        self.scheduler.start()

        self.api.on_deep_link(ctx, functools.partial(self.handle_deep_link, ctx))

        if self.session.restore():
            self.api.log(ctx, "Info", "restored Spotify token from settings")

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
            self.scheduler = None

    def handle_deep_link(self, ctx: Context, params: Dict[str, str]) -> None:
        if params.get("action") != DEEP_LINK_AUTH_ACTION:
            self.api.log(ctx, "Info", f"unknown deeplink received, {params}")
            return

        self.api.log(ctx, "Info", "spotify auth deeplink received")
        code = params.get("code") or ""
        if not code:
            self.api.log(ctx, "Error", "no code received")
            return

        self.session.complete_auth(code)
        self.api.show_app(ctx)
        self.api.change_query(ctx, ChangeQueryParam(query_type="input", query_text=f"{self.trigger_keyword} "))

    def auth_prompt(self) -> List[Result]:
        return [
            Result(
                title="Authenticate",
                sub_title="select this to authenticate with Spotify",
                actions=[
                    Action(name="Auth", action=functools.partial(self.session.begin_auth, self.opener)),
                ],
            )
        ]

    def query(self, ctx: Context, query: Query) -> List[Result]:
        if self.session is None:
            raise RuntimeError("SpotifyPlugin.query called before init")

        if not self.session.is_token_valid() or query.command == COMMAND_AUTH:
            return self.auth_prompt()

        return dispatch(query.command)(self.session, self.api, ctx, query)
