# otp_common/verification/templates.py
from datetime import datetime, timezone

from otp_common.config import EMAIL_CONFIG, OTP_CONFIG

OTP_EMAIL_HTML = """
<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Verification code - {brand}</title>
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f5f5f5;">
  <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #f5f5f5; padding: 20px;">
    <tr>
      <td align="center">
        <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 10px; overflow: hidden;">
          <tr>
            <td style="background-color: #b91c1c; padding: 40px 30px; text-align: center;">
              <h1 style="margin: 0; color: #ffffff; font-size: 28px;">{brand}</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px 30px;">
              <h2 style="margin: 0 0 20px 0; color: #1f2937; font-size: 22px;">Verify your email</h2>
              <p style="margin: 0 0 25px 0; color: #4b5563; font-size: 15px;">
                Use the code below to verify your email address:
              </p>
              <p style="margin: 30px 0; text-align: center; color: #dc2626; font-size: 36px; font-weight: bold;
                        letter-spacing: 8px; font-family: 'Courier New', monospace;">{code}</p>
              <p style="margin: 0; color: #92400e; font-size: 13px;">
                <strong>Important:</strong> this code is valid for <strong>{minutes} minutes</strong> and can be used only once.
              </p>
              <p style="margin: 25px 0 0 0; color: #6b7280; font-size: 14px;">
                If you did not request this code, you can ignore this email.
              </p>
            </td>
          </tr>
          <tr>
            <td style="background-color: #f9fafb; padding: 30px; text-align: center; color: #9ca3af; font-size: 12px;">
              &copy; {year} {brand}. This is an automated message, please do not reply.
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

OTP_EMAIL_TEXT = (
    "Your {brand} verification code is: {code}\n\n"
    "It is valid for {minutes} minutes and can be used only once. "
    "If you did not request this code, ignore this email."
)


def otp_email_subject() -> str:
    return f"Your {EMAIL_CONFIG['brand_name']} verification code"


def render_otp_email(code: str) -> tuple:
    """Return (html, text) bodies for a verification code email"""
    params = {
        "brand": EMAIL_CONFIG["brand_name"],
        "code": code,
        "minutes": OTP_CONFIG["expiry_minutes"],
        "year": datetime.now(timezone.utc).year,
    }
    return OTP_EMAIL_HTML.format(**params), OTP_EMAIL_TEXT.format(**params)
