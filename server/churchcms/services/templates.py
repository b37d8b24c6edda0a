from __future__ import annotations

import html
from datetime import datetime
from typing import Mapping

from churchcms.core.config import settings

ACCENT = "#1e3a8a"
BG = "#f5f5f7"
CARD = "#ffffff"
TEXT = "#0f172a"

DEFAULT_CHURCH_NAME = "Church"

DEFAULT_BIRTHDAY_TEMPLATE = (
    "Happy Birthday {{name}}! May God's blessings overflow in your life today and always. - {{church_name}}"
)
DEFAULT_PROGRAM_TEMPLATE = (
    "A new church program has been added.\n"
    "Program: {{program_title}}\n"
    "Date: {{program_date}}\n"
    "Location: {{program_location}}\n"
    "Details: {{program_description}}\n"
    "- {{church_name}}"
)
DEFAULT_MEMBER_ADDED_TEMPLATE = (
    "Hello {{member_name}}, welcome to our church family. "
    "Your membership profile has been created successfully. - {{church_name}}"
)
DEFAULT_DONATION_TEMPLATE = (
    "A new finance entry has been recorded.\n"
    "Type: {{entry_type}}\n"
    "Amount: {{amount}}\n"
    "Note: {{note}}\n"
    "- {{church_name}}"
)
DEFAULT_USER_ADDED_TEMPLATE = (
    "Hello {{user_name}},\n"
    "Your account has been created.\n"
    "Email: {{user_email}}\n"
    "Password: {{password}}\n"
    "Role: {{role}}\n"
    "Please log in and change your password immediately.\n"
    "- {{church_name}}"
)


def apply_template(template: str, replacements: Mapping[str, str]) -> str:
    """Substitute ``{{key}}`` placeholders; unknown placeholders stay as written."""

    output = template
    for key, value in replacements.items():
        output = output.replace("{{" + key + "}}", value)
    return output


def format_program_date(value: datetime) -> str:
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def format_amount(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{float(value):,.2f}"


def render_email_html(*, headline: str, text_body: str) -> str:
    brand = settings.EMAIL_FROM_NAME or "ChurchCMS"
    paragraphs = "".join(
        f'<p style="margin:0 0 12px 0;">{html.escape(line)}</p>' for line in text_body.splitlines() if line.strip()
    )
    title = html.escape(headline)
    return f"""<!doctype html>
<html>
  <head>
    <meta charset="UTF-8" />
    <title>{title}</title>
  </head>
  <body style="margin:0; padding:0; background:{BG}; color:{TEXT}; font-family:'Inter','Segoe UI',Arial,sans-serif;">
    <table role="presentation" cellpadding="0" cellspacing="0" width="100%" style="background:{BG}; padding:32px 0;">
      <tr>
        <td align="center">
          <table role="presentation" cellpadding="0" cellspacing="0" width="620" style="background:{CARD}; border-radius:18px; overflow:hidden;">
            <tr>
              <td style="background:{ACCENT}; padding:20px 24px; color:#f8fafc;">
                <div style="font-size:12px; letter-spacing:0.16em; text-transform:uppercase; opacity:0.8;">{html.escape(brand)}</div>
                <div style="font-size:22px; font-weight:700; margin-top:6px;">{title}</div>
              </td>
            </tr>
            <tr>
              <td style="padding:28px;">
                <div style="font-size:15px; line-height:1.6; color:{TEXT};">
                  {paragraphs}
                </div>
              </td>
            </tr>
          </table>
        </td>
      </tr>
    </table>
  </body>
</html>"""
