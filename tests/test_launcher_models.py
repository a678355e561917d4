import os
import tempfile
import unittest

from constants import PLUGIN_COMMANDS
from launcher.formatting import first_image_url, format_duration, preview_for_track
from launcher.host import LocalHost, SettingsStore, parse_deep_link
from launcher.models import Action, Icon, Preview, Result, parse_query


class TestParseQuery(unittest.TestCase):
    def parse(self, text):
        return parse_query(text, trigger_keyword="spotify", commands=PLUGIN_COMMANDS)

    def test_command_and_search(self):
        query = self.parse("spotify search daft punk")
        self.assertEqual(query.command, "search")
        self.assertEqual(query.search, "daft punk")
        self.assertEqual(query.raw_query, "spotify search daft punk")

    def test_unregistered_word_is_search_text(self):
        query = self.parse("spotify daft punk")
        self.assertEqual(query.command, "")
        self.assertEqual(query.search, "daft punk")

    def test_bare_trigger(self):
        query = self.parse("spotify ")
        self.assertEqual(query.command, "")
        self.assertEqual(query.search, "")


class TestResultRendering(unittest.TestCase):
    def test_to_dict_uses_host_keys(self):
        result = Result(
            title="T",
            sub_title="S",
            preview=Preview(preview_data="md", preview_properties={"Album": "A"}),
            group="Tracks",
            group_score=100,
            actions=[Action(name="Play", action=lambda: None, prevent_hide_after_action=True)],
        )
        out = result.to_dict()
        self.assertEqual(out["Title"], "T")
        self.assertEqual(out["Icon"], {"ImageType": "relative", "ImageData": "images/app.png"})
        self.assertEqual(out["Preview"]["PreviewProperties"], {"Album": "A"})
        self.assertEqual(out["Actions"], [{"Name": "Play", "PreventHideAfterAction": True}])
        self.assertEqual(out["GroupScore"], 100)
        self.assertNotIn("Score", out)

    def test_url_icon(self):
        self.assertEqual(Icon.url("http://x").to_dict(), {"ImageType": "url", "ImageData": "http://x"})


class TestFormatting(unittest.TestCase):
    def test_format_duration(self):
        self.assertEqual(format_duration(0), "0:00")
        self.assertEqual(format_duration(65000), "1:05")
        self.assertEqual(format_duration(599999), "10:00")

    def test_track_without_album_art(self):
        preview = preview_for_track({"name": "Song", "duration_ms": 1000, "album": {"name": "A", "images": []}})
        self.assertEqual(preview.preview_data, "")
        self.assertEqual(preview.preview_properties["Album"], "A")
        self.assertEqual(first_image_url(None), "")


class TestHost(unittest.TestCase):
    def test_parse_deep_link(self):
        params = parse_deep_link("wox://plugin/abc?action=spotify-auth&code=XYZ")
        self.assertEqual(params, {"action": "spotify-auth", "code": "XYZ"})

    def test_settings_store_persists_to_file(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "nested", "settings.json")
            SettingsStore(path).set("access_token", '{"access_token": "at"}')

            self.assertEqual(SettingsStore(path).get("access_token"), '{"access_token": "at"}')

    def test_unreadable_settings_file_is_ignored(self):
        with tempfile.TemporaryDirectory() as td:
            path = os.path.join(td, "settings.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{broken")
            with self.assertLogs("spotify_launcher", level="WARNING"):
                store = SettingsStore(path)
            self.assertEqual(store.get("access_token"), "")

    def test_deep_link_dispatch_reaches_callbacks(self):
        host = LocalHost()
        received = []
        host.on_deep_link(None, received.append)
        host.dispatch_deep_link("wox://x?action=a")
        self.assertEqual(received, [{"action": "a"}])


if __name__ == "__main__":
    unittest.main(verbosity=2)
