"""HTML bodies for transactional email."""

from html import escape
from urllib.parse import urlencode

from blightstone.auth.settings import auth_settings
from blightstone.settings import app_settings


def build_invite_url(token: str) -> str:
    base = app_settings.app_base_url.rstrip("/")
    return f"{base}/auth-register?{urlencode({'invite': token})}"


def _layout(content: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body>
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: #3b82f6; color: white; padding: 20px; text-align: center;">
    <h1 style="margin: 0;">Blightstone</h1>
  </div>
  <div style="padding: 30px;">
{content}
  </div>
  <div style="background: #f9fafb; padding: 20px; text-align: center; color: #6b7280; font-size: 12px;">
    Blightstone. All rights reserved.
  </div>
</div>
</body>
</html>"""


def render_team_invite(
    inviter_name: str,
    organization_name: str,
    invite_url: str,
) -> tuple[str, str]:
    """Return (subject, html) for a team invitation."""
    subject = f"You've been invited to join {organization_name}"
    url = escape(invite_url, quote=True)
    content = f"""    <h2>You've been invited to join {escape(organization_name)}</h2>
    <p>Hi there!</p>
    <p><strong>{escape(inviter_name)}</strong> has invited you to join their team on Blightstone.</p>
    <div style="text-align: center; margin: 30px 0;">
      <a href="{url}" style="background: #3b82f6; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">Accept Invitation</a>
    </div>
    <p>Or copy and paste this link into your browser:</p>
    <p style="background: #f3f4f6; padding: 10px; border-radius: 4px; word-break: break-all;">{url}</p>
    <p style="color: #6b7280; font-size: 14px; margin-top: 30px;">
      This invitation will expire in {auth_settings.INVITATION_EXPIRE_DAYS} days. If you didn't expect this invitation, you can safely ignore this email.
    </p>"""
    return subject, _layout(content)
