"""Unit tests for the sign-in handoff: origin allowlist, sender page, receiver."""

import json
import pytest

from cognitia.core.auth import MESSAGE_TYPE, HandoffChannel, OriginAllowlist
from cognitia.setting import Settings


APP_URL = "https://cognitia-abc.run.app"
USER = {"id": "u1", "name": "Ada", "email": "ada@example.com", "avatar": None}


@pytest.fixture
def channel():
    return HandoffChannel(APP_URL, OriginAllowlist(APP_URL))


# ── Tests: Allowlist ──────────────────────────────────────────────────────


class TestOriginAllowlist:

    @pytest.mark.parametrize("origin", [
        "https://cognitia-abc.run.app",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ])
    def test_trusted(self, origin):
        assert OriginAllowlist(APP_URL).is_trusted(origin)

    @pytest.mark.parametrize("origin", [
        "https://attacker-owned.run.app",
        "https://preview-123.run.app",
        "https://evil.example",
        "https://run.app.evil.example",
        "https://cognitia-abc.run.app.evil.example",
        "file://localhost",
        "null",
        "",
        None,
    ])
    def test_untrusted(self, origin):
        assert not OriginAllowlist(APP_URL).is_trusted(origin)

    def test_suffix_trust_is_opt_in(self):
        allowlist = OriginAllowlist(APP_URL, trusted_suffixes=(".run.app",))
        assert allowlist.is_trusted("https://preview-123.run.app")
        assert not allowlist.is_trusted("https://evil.example")

    def test_custom_app_host(self):
        allowlist = OriginAllowlist("https://intel.example.com")
        assert allowlist.is_trusted("https://intel.example.com")
        assert not allowlist.is_trusted("https://other.run.app")

    def test_no_app_url(self):
        allowlist = OriginAllowlist(None)
        assert allowlist.app_host is None
        assert allowlist.is_trusted("http://localhost:3000")
        assert not allowlist.is_trusted("https://intel.example.com")


# ── Tests: Sender ─────────────────────────────────────────────────────────


class TestSuccessPage:

    def test_targets_app_origin(self, channel):
        html = channel.render_success_page(USER)
        assert f'"{APP_URL}"' in html
        assert '"*"' not in html
        assert "window.close()" in html

    def test_carries_message(self, channel):
        html = channel.render_success_page(USER)
        assert json.dumps({"type": MESSAGE_TYPE, "user": USER}) in html

    def test_redirects_without_opener(self, channel):
        html = channel.render_success_page(USER)
        assert "window.location.href = '/'" in html

    def test_user_fields_escaped(self, channel):
        html = channel.render_success_page(dict(USER, name="</script><script>alert(1)"))
        assert "</script><script>" not in html
        assert "\\u003c/script\\u003e" in html

    def test_target_origin_strips_path(self):
        channel = HandoffChannel("https://intel.example.com/app", OriginAllowlist(None))
        assert channel.target_origin == "https://intel.example.com"

    def test_target_origin_without_app_url(self):
        assert HandoffChannel(None, OriginAllowlist(None)).target_origin == "/"


# ── Tests: Receiver ───────────────────────────────────────────────────────


class TestReceive:

    def test_accepts_trusted_message(self, channel):
        assert channel.receive(APP_URL, {"type": MESSAGE_TYPE, "user": USER}) == USER

    def test_ignores_untrusted_origin(self, channel):
        assert channel.receive("https://evil.example", {"type": MESSAGE_TYPE, "user": USER}) is None

    @pytest.mark.parametrize("data", [
        {"type": "SOMETHING_ELSE", "user": USER},
        {"type": MESSAGE_TYPE},
        {"type": MESSAGE_TYPE, "user": {"name": "no id"}},
        "OAUTH_AUTH_SUCCESS",
        None,
    ])
    def test_ignores_other_messages(self, channel, data):
        assert channel.receive(APP_URL, data) is None

    def test_receiver_script_embeds_policy(self, channel):
        script = channel.receiver_script()
        assert '"appHost": "cognitia-abc.run.app"' in script
        assert '"suffixes": []' in script
        assert '"localhost"' in script
        assert json.dumps(MESSAGE_TYPE) in script
        assert "addEventListener('message'" in script

    def test_rejects_sibling_hosting_origin(self, channel):
        forged = {"type": MESSAGE_TYPE, "user": {"id": "attacker"}}
        assert channel.receive("https://attacker-owned.run.app", forged) is None


class TestSuffixSetting:

    def test_no_suffixes_by_default(self, monkeypatch):
        monkeypatch.delenv("TRUSTED_ORIGIN_SUFFIXES", raising=False)
        assert Settings.from_env().trusted_origin_suffixes == ()
        assert Settings().trusted_origin_suffixes == ()

    def test_suffixes_from_environment(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_ORIGIN_SUFFIXES", ".run.app, .example.dev")
        assert Settings.from_env().trusted_origin_suffixes == (".run.app", ".example.dev")
