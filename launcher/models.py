import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

from constants import DEFAULT_ICON_PATH

if TYPE_CHECKING:
    from launcher.host import PublicAPI


@dataclass(frozen=True)
class Context:
    trace_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class Query:
    """A launcher query: ``spotify search daft punk`` -> command "search", search "daft punk"."""

    raw_query: str
    trigger_keyword: str = ""
    command: str = ""
    search: str = ""


def parse_query(raw_query: str, *, trigger_keyword: str, commands: Iterable[str]) -> Query:
    """Split raw launcher input into trigger keyword, command and search text.

    The first word after the trigger keyword is the command only if the
    plugin registered it; otherwise the whole remainder is search text.
    """
    text = (raw_query or "").strip()
    parts = text.split(None, 1)
    if parts and parts[0].lower() == trigger_keyword.lower():
        text = parts[1] if len(parts) > 1 else ""

    parts = text.split(None, 1)
    if parts and parts[0].lower() in set(commands):
        return Query(
            raw_query=raw_query,
            trigger_keyword=trigger_keyword,
            command=parts[0].lower(),
            search=parts[1].strip() if len(parts) > 1 else "",
        )

    return Query(raw_query=raw_query, trigger_keyword=trigger_keyword, search=text)


@dataclass(frozen=True)
class Icon:
    image_type: str = "relative"
    image_data: str = DEFAULT_ICON_PATH

    @staticmethod
    def url(url: str) -> "Icon":
        return Icon(image_type="url", image_data=url)

    def to_dict(self) -> Dict[str, str]:
        return {"ImageType": self.image_type, "ImageData": self.image_data}


DEFAULT_ICON = Icon()


@dataclass
class Preview:
    preview_data: str = ""
    preview_type: str = "markdown"
    preview_properties: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "PreviewType": self.preview_type,
            "PreviewData": self.preview_data,
            "PreviewProperties": dict(self.preview_properties),
        }


@dataclass
class Action:
    """Named zero-argument operation attached to a result."""

    name: str
    action: Callable[[], Any]
    prevent_hide_after_action: bool = False

    def __call__(self) -> Any:
        return self.action()

    def to_dict(self) -> Dict[str, Any]:
        return {"Name": self.name, "PreventHideAfterAction": self.prevent_hide_after_action}


@dataclass
class Result:
    title: str
    sub_title: str = ""
    icon: Icon = DEFAULT_ICON
    preview: Optional[Preview] = None
    group: str = ""
    group_score: int = 0
    score: int = 0
    actions: List[Action] = field(default_factory=list)

    def action_named(self, name: str) -> Optional[Action]:
        return next((a for a in self.actions if a.name == name), None)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "Title": self.title,
            "SubTitle": self.sub_title,
            "Icon": self.icon.to_dict(),
            "Actions": [a.to_dict() for a in self.actions],
        }
        if self.preview is not None:
            out["Preview"] = self.preview.to_dict()
        if self.group:
            out["Group"] = self.group
            out["GroupScore"] = self.group_score
        if self.score:
            out["Score"] = self.score
        return out


@dataclass(frozen=True)
class ChangeQueryParam:
    query_type: str = "input"
    query_text: str = ""


@dataclass
class PluginInitParams:
    api: "PublicAPI"
    plugin_directory: str = ""
