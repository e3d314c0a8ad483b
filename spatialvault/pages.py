"""
Pages served to the browser tab when the login flow ends.
"""

import html
import re
from typing import Dict, Optional

from . import config

SLOTS = ("title", "bodyContent", "breadcrumb", "dynamicStyle")
_SLOT_RE = re.compile(r"\$\{(" + "|".join(SLOTS) + r")\}")

_template_cache: Optional[str] = None


def load_template() -> str:
    global _template_cache
    if _template_cache is None:
        with open(config.AUTH_PAGE_TEMPLATE, 'r', encoding='utf-8') as f:
            _template_cache = f.read()
    return _template_cache


def fill_template(template: str, values: Dict[str, str]) -> str:
    """
    Replace ${slot} placeholders in one pass.

    Inserted values are not scanned again, so a value containing a
    placeholder is emitted literally. Unknown placeholders are left alone.
    """
    return _SLOT_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def render_auth_page(title: str, body_html: str, is_error: bool,
                     template: Optional[str] = None) -> str:
    """
    Render the success or error page.

    Args:
        title: Page heading, escaped before insertion
        body_html: Trusted HTML for the page body
        is_error: Selects the red title color and the "Error" breadcrumb
        template: Template text; defaults to the bundled page
    """
    color = config.PAGE_COLOR_ERROR if is_error else config.PAGE_COLOR_SUCCESS
    values = {
        'title': html.escape(title),
        'bodyContent': body_html,
        'breadcrumb': "Error" if is_error else "Success",
        'dynamicStyle': f"<style>:root {{ --title-color: {color}; }}</style>",
    }
    return fill_template(template if template is not None else load_template(), values)


def success_page() -> str:
    return render_auth_page(
        "Authentication Successful",
        f"<p>{config.APP_NAME} is now connected to your Google Account.</p><p>You can close this tab.</p>",
        is_error=False,
    )


def denied_page() -> str:
    return render_auth_page(
        "Authentication Failed",
        "<p>No authorization code was received.</p><p>You can close this tab and try again.</p>",
        is_error=True,
    )


def failure_page(reason: str) -> str:
    return render_auth_page(
        "Authentication Failed",
        f"<p>{html.escape(reason)}</p><p>You can close this tab and try again.</p>",
        is_error=True,
    )
