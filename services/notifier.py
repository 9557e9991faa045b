# ============================================================================
# ALERT NOTIFIERS
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Service - Discord webhook and SendGrid email delivery
# PURPOSE: Send alerts on independent channels with retry and rate limiting
# CREATED: 17 OCT 2026
# ============================================================================
"""
Alert Notifiers

Two channels implement the Notifier protocol:
- DiscordNotifier: webhook embeds, local rate limit (5 requests / 2s),
  honors 429 retry-after, retries 5xx and transport errors
- EmailNotifier: SendGrid v3 mail/send over httpx, retries non-2xx

Both return SendResult and never raise. AlertDispatcher fans one alert out
to the selected channels concurrently; it succeeds when at least one
channel succeeds.

Backoff: min(base * 2^attempt, max) with base 1s, max 8s, 3 attempts.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

import httpx

from core.config import AlertDefaults, get_defaults
from core.models import Alert, DispatchResult, SendResult
from infrastructure.http import http_client_scope
from infrastructure.secrets import SecretProvider
from services.alert_templates import render_alert

logger = logging.getLogger(__name__)

CHANNEL_DISCORD = "discord"
CHANNEL_EMAIL = "email"

Sleep = Callable[[float], Awaitable[None]]


class Notifier(Protocol):
    """A channel that can deliver an Alert."""

    channel: str

    async def send_alert(self, alert: Alert) -> SendResult:
        ...


# ============================================================================
# DISCORD
# ============================================================================

@dataclass
class RateLimitState:
    """Local view of the webhook rate limit window."""
    remaining: int
    reset_at: float = 0.0


class DiscordNotifier:
    """
    Discord webhook notifier.

    Rate limit state lives on the instance; reset() restores a fresh window.
    """

    channel = CHANNEL_DISCORD

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        settings: Optional[AlertDefaults] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or get_defaults().alerts
        self.webhook_url = webhook_url or self.settings.discord_webhook_url
        self._http_client = http_client
        self._sleep = sleep
        self._clock = clock
        self.rate_limit = RateLimitState(remaining=self.settings.discord_max_requests)

    def reset(self) -> None:
        """Forget rate limit state (for testing)."""
        self.rate_limit = RateLimitState(remaining=self.settings.discord_max_requests)

    def build_payload(self, alert: Alert) -> Dict[str, Any]:
        """Build the webhook body with one embed."""
        embed: Dict[str, Any] = {
            "title": alert.title,
            "color": alert.severity.color,
            "timestamp": alert.timestamp,
            "footer": {"text": f"Pre-flight Gate | {alert.severity.value}"},
        }
        if alert.description:
            embed["description"] = alert.description
        if alert.fields:
            embed["fields"] = [f.model_dump() for f in alert.fields]
        return {"username": "Pre-flight Gate", "embeds": [embed]}

    async def _check_rate_limit(self) -> None:
        """Consume one request from the window, waiting if it is exhausted."""
        now = self._clock()
        window = self.settings.discord_window_seconds

        if now >= self.rate_limit.reset_at:
            self.rate_limit = RateLimitState(
                remaining=self.settings.discord_max_requests,
                reset_at=now + window,
            )

        if self.rate_limit.remaining <= 0:
            wait = self.rate_limit.reset_at - now
            logger.warning(f"Discord rate limit reached, waiting {wait:.2f}s")
            await self._sleep(wait)
            self.rate_limit = RateLimitState(
                remaining=self.settings.discord_max_requests,
                reset_at=self._clock() + window,
            )

        self.rate_limit.remaining -= 1

    def _update_rate_limit(self, headers: httpx.Headers) -> None:
        remaining = headers.get("X-RateLimit-Remaining")
        reset_after = headers.get("X-RateLimit-Reset-After")
        if remaining is not None:
            self.rate_limit.remaining = int(remaining)
        if reset_after is not None:
            self.rate_limit.reset_at = self._clock() + float(reset_after)

    async def send_alert(self, alert: Alert) -> SendResult:
        """Send an alert. Never raises."""
        if not self.webhook_url:
            return SendResult(success=False, error="Discord webhook URL not configured")

        payload = self.build_payload(alert)
        retry = self.settings.discord_retry
        logger.info(f"Sending Discord alert: [{alert.severity.value}] {alert.title}")

        try:
            async with http_client_scope(self._http_client, self.settings.request_timeout_seconds) as client:
                for attempt in range(retry.max_attempts):
                    try:
                        await self._check_rate_limit()
                        response = await client.post(self.webhook_url, json=payload)
                        self._update_rate_limit(response.headers)

                        if response.is_success:
                            logger.info(f"Discord webhook sent (attempt {attempt + 1})")
                            return SendResult(success=True)

                        if response.status_code == 429:
                            retry_after = float(response.headers.get("retry-after", "5"))
                            logger.warning(f"Discord rate limited, waiting {retry_after}s")
                            await self._sleep(retry_after)
                            continue

                        if 400 <= response.status_code < 500:
                            error = f"Discord webhook failed: {response.status_code} - {response.text}"
                            logger.error(error)
                            return SendResult(success=False, error=error)

                        raise RuntimeError(f"Discord webhook server error: {response.status_code}")

                    except (httpx.HTTPError, RuntimeError) as e:
                        if attempt == retry.max_attempts - 1:
                            logger.error(f"Discord webhook failed after {retry.max_attempts} attempts: {e}")
                            return SendResult(success=False, error=str(e))
                        delay = retry.delay_for(attempt)
                        logger.warning(f"Discord webhook failed, retrying in {delay}s: {e}")
                        await self._sleep(delay)

        except Exception as e:
            logger.error(f"Failed to send Discord alert: {e}")
            return SendResult(success=False, error=str(e))

        return SendResult(success=False, error="Max retries exceeded")


# ============================================================================
# EMAIL
# ============================================================================

class EmailNotifier:
    """SendGrid email notifier."""

    channel = CHANNEL_EMAIL

    def __init__(
        self,
        secrets: SecretProvider,
        settings: Optional[AlertDefaults] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.secrets = secrets
        self.settings = settings or get_defaults().alerts
        self._http_client = http_client
        self._sleep = sleep

    def build_message(self, alert: Alert) -> Dict[str, Any]:
        """Build the SendGrid v3 request body."""
        lines = [alert.description, ""]
        lines.extend(f"{field.name}: {field.value}" for field in alert.fields)
        html = render_alert("email_html", alert=alert, color=f"#{alert.severity.color:06X}")
        return {
            "personalizations": [{"to": [{"email": self.settings.operator_email}]}],
            "from": {"email": self.settings.from_email, "name": "Pre-flight Gate"},
            "subject": f"[{alert.severity.value}] {alert.title}",
            "content": [
                {"type": "text/plain", "value": "\n".join(lines).strip()},
                {"type": "text/html", "value": html},
            ],
        }

    async def send_alert(self, alert: Alert) -> SendResult:
        """Send an alert email. Never raises."""
        if not self.settings.operator_email:
            return SendResult(success=False, error="Operator email not configured")

        retry = self.settings.email_retry
        logger.info(f"Sending alert email: [{alert.severity.value}] {alert.title}")

        try:
            api_key = await self.secrets.get_secret(self.settings.sendgrid_secret_name)
            message = self.build_message(alert)
            headers = {"Authorization": f"Bearer {api_key}"}

            async with http_client_scope(self._http_client, self.settings.request_timeout_seconds) as client:
                for attempt in range(retry.max_attempts):
                    try:
                        response = await client.post(self.settings.sendgrid_url, json=message, headers=headers)

                        if response.is_success:
                            logger.info(f"Email sent (attempt {attempt + 1}, status {response.status_code})")
                            return SendResult(
                                success=True,
                                message_id=response.headers.get("x-message-id"),
                            )

                        if response.status_code == 429 and "retry-after" in response.headers:
                            await self._sleep(float(response.headers["retry-after"]))
                            continue

                        raise RuntimeError(f"SendGrid error: {response.status_code}")

                    except (httpx.HTTPError, RuntimeError) as e:
                        if attempt == retry.max_attempts - 1:
                            logger.error(f"Email send failed after {retry.max_attempts} attempts: {e}")
                            return SendResult(success=False, error=str(e))
                        delay = retry.delay_for(attempt)
                        logger.warning(f"Email send failed, retrying in {delay}s: {e}")
                        await self._sleep(delay)

        except Exception as e:
            logger.error(f"Failed to send alert email: {e}")
            return SendResult(success=False, error=str(e))

        return SendResult(success=False, error="Max retries exceeded")


# ============================================================================
# DISPATCH
# ============================================================================

class AlertDispatcher:
    """Send one alert to several channels concurrently."""

    def __init__(self, discord: Notifier, email: Notifier):
        self.discord = discord
        self.email = email

    async def dispatch(self, alert: Alert, discord: bool = True, email: bool = False) -> DispatchResult:
        """
        Send to the selected channels.

        Returns:
            DispatchResult; success if at least one channel succeeded,
            error joins per-channel failures with "; "
        """
        notifiers: List[Notifier] = []
        if discord:
            notifiers.append(self.discord)
        if email:
            notifiers.append(self.email)

        if not notifiers:
            return DispatchResult(success=False, error="No channels selected")

        results = await asyncio.gather(
            *(n.send_alert(alert) for n in notifiers),
            return_exceptions=True,
        )

        sent: List[str] = []
        errors: List[str] = []
        for notifier, result in zip(notifiers, results):
            label = notifier.channel.capitalize()
            if isinstance(result, BaseException):
                errors.append(f"{label}: {result}")
            elif result.success:
                sent.append(notifier.channel)
            elif result.error:
                errors.append(f"{label}: {result.error}")
            else:
                errors.append(f"{label}: unknown error")

        dispatch = DispatchResult(
            success=len(sent) > 0,
            channels=sent,
            error="; ".join(errors) if errors else None,
        )
        if not dispatch.success:
            logger.error(f"Alert '{alert.title}' not delivered: {dispatch.error}")
        return dispatch


__all__ = [
    "CHANNEL_DISCORD",
    "CHANNEL_EMAIL",
    "Notifier",
    "RateLimitState",
    "DiscordNotifier",
    "EmailNotifier",
    "AlertDispatcher",
]
