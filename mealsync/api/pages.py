"""HTML returned to the OAuth popup after Fitbit redirects back."""

from __future__ import annotations

import html
import json
from typing import Optional

SUCCESS_MESSAGE_TYPE = "FITBIT_AUTH_SUCCESS"
ERROR_MESSAGE_TYPE = "FITBIT_AUTH_ERROR"

_SUCCESS_CLOSE_DELAY_MS = 2000
_FAILURE_CLOSE_DELAY_MS = 3000

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; text-align: center; padding: 50px; background: #f8f9fa; }}
    .container {{ max-width: 400px; margin: 0 auto; background: white; padding: 30px;
                 border-radius: 10px; box-shadow: 0 2px 10px rgba(0,0,0,0.1); }}
    .success {{ color: #22c55e; }}
    .error {{ color: #dc2626; }}
  </style>
</head>
<body>
  <div class="container">
    <h1 class="{css_class}">{heading}</h1>
    <p>{body}</p>
    <p>This window will close automatically.</p>
  </div>
  <script>
    (function () {{
      var message = {message};
      if (window.opener) {{
        window.opener.postMessage(message, {target_origin});
      }}
      setTimeout(function () {{
        try {{ window.close(); }} catch (e) {{ console.log('Could not close window automatically'); }}
      }}, {delay});
    }})();
  </script>
</body>
</html>
"""


def _script_json(value: object) -> str:
    # "</" would end the inline script early.
    return json.dumps(value).replace("</", "<\\/")


def render_callback_page(
    *, success: bool, error: Optional[str] = None, target_origin: Optional[str] = None
) -> str:
    """Render the confirmation page that notifies ``window.opener`` and self-closes."""
    if success:
        message = {"type": SUCCESS_MESSAGE_TYPE}
        title, heading, css_class = "Fitbit Connected", "Fitbit Connected!", "success"
        body = "Your Fitbit account has been connected to the meal planner."
        delay = _SUCCESS_CLOSE_DELAY_MS
    else:
        reason = error or "Unknown error"
        message = {"type": ERROR_MESSAGE_TYPE, "error": reason}
        title, heading, css_class = "Fitbit Connection Failed", "Connection Failed", "error"
        body = f"Failed to connect to Fitbit: {html.escape(reason)}"
        delay = _FAILURE_CLOSE_DELAY_MS

    return _PAGE_TEMPLATE.format(
        title=title,
        heading=heading,
        css_class=css_class,
        body=body,
        message=_script_json(message),
        target_origin=_script_json(target_origin or "*"),
        delay=delay,
    )


__all__ = ["ERROR_MESSAGE_TYPE", "SUCCESS_MESSAGE_TYPE", "render_callback_page"]
