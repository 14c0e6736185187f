from __future__ import annotations

from dataclasses import dataclass
from html import escape

_STYLE = """
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
.container { max-width: 600px; margin: 0 auto; padding: 20px; }
.header { background: %(header_bg)s; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }
.content { background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }
.button { display: inline-block; padding: 12px 30px; background: #667eea; color: white; text-decoration: none; border-radius: 5px; margin: 20px 0; }
.code { font-size: 32px; letter-spacing: 8px; font-weight: bold; text-align: center; margin: 20px 0; }
.status { padding: 15px; background: %(status_bg)s; color: %(status_fg)s; border-radius: 5px; margin: 20px 0; text-align: center; font-weight: bold; }
.footer { text-align: center; margin-top: 20px; color: #666; font-size: 12px; }
"""

_PRIMARY = "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"
_NEGATIVE = "linear-gradient(135deg, #f093fb 0%, #f5576c 100%)"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def _page(*, title: str, subtitle: str, body: str, header_bg: str = _PRIMARY,
          status_bg: str = "#d4edda", status_fg: str = "#155724") -> str:
    style = _STYLE % {"header_bg": header_bg, "status_bg": status_bg, "status_fg": status_fg}
    return (
        "<!DOCTYPE html><html><head><style>" + style + "</style></head><body>"
        '<div class="container">'
        f'<div class="header"><h1>{title}</h1><p>{subtitle}</p></div>'
        f'<div class="content">{body}'
        '<div class="footer"><p>&copy; EduChain. All rights reserved.</p></div>'
        "</div></div></body></html>"
    )


def verification_email(*, name: str, link: str, ttl_hours: int, purpose: str) -> RenderedEmail:
    n = escape(name or "Student")
    url = escape(link, quote=True)
    if purpose == "account":
        intro = "Welcome to EduChain! Please confirm the email address for your account."
        subject = "Verify Your Email - EduChain Account"
    else:
        intro = "Thank you for applying for a scholarship through EduChain! To complete your application, please verify your email address."
        subject = "Verify Your Email - EduChain Scholarship Application"
    body = (
        f"<h2>Hello {n},</h2><p>{intro}</p>"
        f'<div style="text-align: center;"><a href="{url}" class="button">Verify Email Address</a></div>'
        "<p>Or copy and paste this link into your browser:</p>"
        f'<p style="word-break: break-all; color: #667eea;">{url}</p>'
        f"<p><strong>Important:</strong> This verification link will expire in {int(ttl_hours)} hours.</p>"
        "<p>If you didn't request this, please ignore this email.</p>"
    )
    text = f"Hello {name or 'Student'},\n\n{intro}\n\nVerify here: {link}\n\nThis link expires in {int(ttl_hours)} hours."
    return RenderedEmail(
        subject=subject,
        html=_page(title="EduChain", subtitle="Decentralized Scholarship Platform", body=body),
        text=text,
    )


def status_update_email(*, name: str, status: str, pool: str) -> RenderedEmail:
    approved = status == "approved"
    n = escape(name or "Student")
    p = escape(pool or "the scholarship pool")
    if approved:
        subject = "Congratulations! Your Scholarship Application is Approved"
        verdict = "APPROVED"
        detail = (
            "<p>Congratulations! Your application has been approved. The scholarship funds "
            "will be transferred to your wallet shortly.</p>"
            "<p>Please check your wallet and the EduChain dashboard for the transaction details.</p>"
        )
    else:
        subject = "Scholarship Application Update"
        verdict = "NOT SELECTED"
        detail = (
            "<p>We regret to inform you that your application was not selected at this time. "
            "We encourage you to apply for other available scholarships.</p>"
        )
    body = (
        f"<h2>Hello {n},</h2>"
        f"<p>Your scholarship application for <strong>{p}</strong> has been reviewed.</p>"
        f'<div class="status">{verdict}</div>{detail}'
    )
    html = _page(
        title="EduChain",
        subtitle="Application Status Update",
        body=body,
        header_bg=_PRIMARY if approved else _NEGATIVE,
        status_bg="#d4edda" if approved else "#f8d7da",
        status_fg="#155724" if approved else "#721c24",
    )
    text = f"Hello {name or 'Student'},\n\nYour application for {pool} has been reviewed: {verdict}."
    return RenderedEmail(subject=subject, html=html, text=text)


def otp_email(*, name: str, code: str, ttl_minutes: int) -> RenderedEmail:
    n = escape(name or "there")
    c = escape(code)
    body = (
        f"<h2>Hello {n},</h2><p>Use this code to verify your email address:</p>"
        f'<div class="code">{c}</div>'
        f"<p>The code expires in {int(ttl_minutes)} minutes. Never share it with anyone.</p>"
    )
    return RenderedEmail(
        subject="Your EduChain verification code",
        html=_page(title="EduChain", subtitle="Email Verification", body=body),
        text=f"Your EduChain verification code is {code}. It expires in {int(ttl_minutes)} minutes.",
    )


def payment_email(*, name: str, wallet: str, tx_hash: str | None, explorer_url: str) -> RenderedEmail:
    n = escape(name or "Student")
    w = escape(wallet or "")
    tx_html = ""
    tx_text = ""
    if tx_hash:
        link = escape(f"{explorer_url.rstrip('/')}/tx/{tx_hash}", quote=True)
        tx_html = (
            f"<p><strong>Transaction Hash:</strong> {escape(tx_hash)}</p>"
            f'<p><a href="{link}" target="_blank">View transaction on block explorer</a></p>'
        )
        tx_text = f"\nTransaction: {tx_hash}"
    body = (
        f"<h2>Great news {n}!</h2>"
        "<p>Your scholarship payment has been <strong>sent</strong> to your wallet!</p>"
        f"<p><strong>Your Wallet:</strong> {w}</p>{tx_html}"
        "<p>The funds should appear in your wallet within a few minutes.</p>"
    )
    return RenderedEmail(
        subject="Scholarship Payment Sent!",
        html=_page(title="EduChain", subtitle="Scholarship Payment", body=body),
        text=f"Your scholarship payment has been sent to {wallet}.{tx_text}",
    )
