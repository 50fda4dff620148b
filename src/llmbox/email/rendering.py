"""HTML rendering of generated markdown for outbound emails.

Generated answers and newsletters are markdown.  They are sent as
``text/plain`` unchanged (readable in text-only clients) plus a
``text/html`` alternative rendered here with ``markdown-it-py`` and wrapped
in a small table-based template that mail clients display consistently.

Raw HTML in the generated text is not passed through: the model's output
is untrusted content.
"""

from __future__ import annotations

from html import escape

from markdown_it import MarkdownIt

_markdown = (
    MarkdownIt("commonmark", {"html": False, "breaks": True, "linkify": False})
    .enable("table")
    .enable("strikethrough")
)

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, "
    "'Helvetica Neue', Arial, sans-serif; font-size: 16px; line-height: 1.6; "
    "color: #333333;"
)
_HEADER_STYLE = "margin: 0; font-size: 22px; font-weight: 700; color: #1a1a1a;"
_FOOTER_STYLE = "margin: 0; font-size: 13px; color: #6c757d;"

_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5;">
<table role="presentation" width="100%" cellpadding="0" cellspacing="0">
<tr><td style="padding: 20px 0;">
<table role="presentation" align="center" width="600" cellpadding="0" cellspacing="0" \
style="background-color: #ffffff; max-width: 600px;">
{header}<tr><td style="padding: 24px; {body_style}">
{content}
</td></tr>
{footer}</table>
</td></tr>
</table>
</body>
</html>"""


def markdown_to_html(text: str) -> str:
    """Render markdown *text* to an HTML fragment ("" for blank input)."""
    if not text or not text.strip():
        return ""
    return _markdown.render(text).strip()


def wrap_in_template(
    content_html: str,
    header_text: str | None = None,
    footer_text: str | None = None,
) -> str:
    """Wrap an HTML fragment in the email layout.

    *header_text* and *footer_text* are plain text and get escaped.
    """
    header = ""
    if header_text:
        header = (
            '<tr><td style="padding: 24px 24px 0;">'
            f'<h2 style="{_HEADER_STYLE}">{escape(header_text)}</h2></td></tr>\n'
        )
    footer = ""
    if footer_text:
        footer = (
            '<tr><td style="padding: 16px 24px; border-top: 1px solid #e9ecef;">'
            f'<p style="{_FOOTER_STYLE}">{escape(footer_text)}</p></td></tr>\n'
        )
    return _TEMPLATE.format(
        header=header,
        footer=footer,
        content=content_html,
        body_style=_BODY_STYLE,
    )


def render_reply_html(content: str) -> str:
    """HTML alternative for a direct-assistant reply."""
    return wrap_in_template(markdown_to_html(content))


def render_newsletter_html(content: str, header_text: str, footer_text: str) -> str:
    """HTML alternative for a newsletter, with a title and reply footer."""
    return wrap_in_template(markdown_to_html(content), header_text, footer_text)
