"""Cross-window sign-in handoff.

The OAuth callback runs in a popup; it hands the resolved user to the window
that opened it via ``postMessage``. Both ends are origin-restricted:

- the sender targets the application origin only;
- the receiver drops any message whose origin is not on the allowlist
  (the exact application host and local development hosts; hosting suffixes
  are trusted only when explicitly configured).

The allowlist rule lives in OriginAllowlist and is rendered into the served
receiver script so the browser applies exactly the same check.
"""

import json
import logging
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

MESSAGE_TYPE = "OAUTH_AUTH_SUCCESS"
RECEIVED_EVENT = "cognitia:auth"
LOCAL_DEV_HOSTS = ("localhost", "127.0.0.1")


def _host_of(origin: str) -> Optional[str]:
    try:
        parts = urlsplit(origin)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https"):
        return None
    return parts.hostname


def _script_json(value: Any) -> str:
    """JSON safe to embed in a <script> block."""
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


class OriginAllowlist:
    """Which message origins a receiver may trust."""

    def __init__(
        self,
        app_url: Optional[str],
        trusted_suffixes: Iterable[str] = (),
        dev_hosts: Iterable[str] = LOCAL_DEV_HOSTS,
    ):
        self.app_host = _host_of(app_url) if app_url else None
        self.trusted_suffixes = tuple(s for s in trusted_suffixes if s)
        self.dev_hosts = tuple(dev_hosts)

    def is_trusted(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        host = _host_of(origin)
        if not host:
            return False
        if self.app_host and host == self.app_host:
            return True
        if host in self.dev_hosts:
            return True
        return any(host.endswith(suffix) for suffix in self.trusted_suffixes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appHost": self.app_host,
            "suffixes": list(self.trusted_suffixes),
            "devHosts": list(self.dev_hosts),
        }


class HandoffChannel:
    """Sender and receiver halves of the sign-in handoff."""

    def __init__(self, app_url: Optional[str], allowlist: OriginAllowlist):
        self.app_url = app_url
        self.allowlist = allowlist

    @property
    def target_origin(self) -> str:
        """Origin the callback page posts to; same-origin when APP_URL is unset."""
        if not self.app_url:
            return "/"
        parts = urlsplit(self.app_url)
        return f"{parts.scheme}://{parts.netloc}"

    def render_success_page(self, user: Dict[str, Any]) -> str:
        """HTML for the callback popup: post the user to the opener and close."""
        message = {"type": MESSAGE_TYPE, "user": user}
        return f"""<!DOCTYPE html>
<html>
  <body>
    <script>
      if (window.opener) {{
        window.opener.postMessage({_script_json(message)}, {_script_json(self.target_origin)});
        window.close();
      }} else {{
        window.location.href = '/';
      }}
    </script>
    <p>Authentication successful. This window should close automatically.</p>
  </body>
</html>
"""

    def receive(self, origin: Optional[str], data: Any) -> Optional[Dict[str, Any]]:
        """Validate an incoming handoff message.

        Returns the user payload, or None when the origin is untrusted or
        the message is not a sign-in success.
        """
        if not self.allowlist.is_trusted(origin):
            logger.warning(f"Rejected handoff message from untrusted origin {origin!r}")
            return None
        if not isinstance(data, dict) or data.get("type") != MESSAGE_TYPE:
            return None
        user = data.get("user")
        if not isinstance(user, dict) or not user.get("id"):
            return None
        return user

    def receiver_script(self) -> str:
        """Browser-side receiver applying the same allowlist as receive()."""
        return f"""(function () {{
  var policy = {_script_json(self.allowlist.to_dict())};
  function trusted(origin) {{
    var host;
    try {{
      var url = new URL(origin);
      if (url.protocol !== 'http:' && url.protocol !== 'https:') return false;
      host = url.hostname;
    }} catch (e) {{
      return false;
    }}
    if (policy.appHost && host === policy.appHost) return true;
    if (policy.devHosts.indexOf(host) !== -1) return true;
    for (var i = 0; i < policy.suffixes.length; i++) {{
      var s = policy.suffixes[i];
      if (host.length >= s.length && host.slice(-s.length) === s) return true;
    }}
    return false;
  }}
  window.addEventListener('message', function (event) {{
    if (!trusted(event.origin)) return;
    var data = event.data;
    if (!data || data.type !== {_script_json(MESSAGE_TYPE)} || !data.user || !data.user.id) return;
    window.dispatchEvent(new CustomEvent({_script_json(RECEIVED_EVENT)}, {{ detail: data.user }}));
  }});
}})();
"""
