"""
Channel adapters for expiry alerts.

Provides one adapter per notification channel (Telegram, WeChat/ServerChan,
QQ/Qmsg, generic Webhook, Email) behind a single protocol. Each adapter makes
exactly one external delivery (with at most one local retry for transient
failures) and translates the transport's answer into a DeliveryResult.
Adapters never raise: every failure becomes a result with a readable detail.
"""

import asyncio
import smtplib
import ssl
from abc import abstractmethod
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from .config import (
    EmailCredentials,
    QQCredentials,
    RetryConfig,
    SmtpConfig,
    SystemConfig,
    TelegramCredentials,
    WebhookCredentials,
    WeChatCredentials,
)
from .enums import ChannelTag
from .exceptions import ChannelError
from .models import ChannelCredentials, RenderedMessage
from .retry_manager import RetryManager

TIMEOUT_DETAIL = "timeout"


@dataclass
class DeliveryResult:
    """Result of a single channel delivery attempt."""

    channel: str
    success: bool
    error: Optional[str] = None
    attempts: int = 1


@runtime_checkable
class ChannelAdapter(Protocol):
    """Protocol defining the interface for channel adapters."""

    @abstractmethod
    async def send(
        self, message: RenderedMessage, credentials: ChannelCredentials
    ) -> DeliveryResult:
        """
        Deliver a rendered message.

        Args:
            message: The message rendered for this channel
            credentials: Resolved credentials for this channel

        Returns:
            DeliveryResult describing success or failure
        """
        ...

    @abstractmethod
    def get_name(self) -> str:
        """
        Get the channel name.

        Returns:
            The name of this notification channel
        """
        ...


def describe_error(error: Optional[BaseException]) -> str:
    """Human-readable detail for a failed delivery."""
    if error is None:
        return "unknown error"
    if isinstance(error, ChannelError):
        return error.message
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return TIMEOUT_DETAIL
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        return f"HTTP {response.status_code}: {_snippet(response)}"
    if isinstance(error, httpx.TransportError):
        return f"transport error: {error}" if str(error) else f"transport error: {type(error).__name__}"
    return f"{type(error).__name__}: {error}"


def _snippet(response: httpx.Response, limit: int = 200) -> str:
    text = response.text.strip()
    return text[:limit] if text else response.reason_phrase


class _BaseChannel:
    """Shared credential checks, simulation mode and retry wiring."""

    channel: ChannelTag
    credentials_type: type

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 10.0,
        simulation_mode: bool = False,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            retry_config: Local retry behavior (defaults to one retry)
            timeout: Per-request timeout in seconds
            simulation_mode: If True, nothing is sent and delivery succeeds
        """
        self._retry_manager = RetryManager(retry_config or RetryConfig())
        self._timeout = timeout
        self._simulation_mode = simulation_mode

    def get_name(self) -> str:
        """Return channel name."""
        return self.channel.value

    def _check_credentials(self, credentials: Any) -> None:
        if not isinstance(credentials, self.credentials_type):
            raise ChannelError(
                code="bad_credentials",
                message=f"expected {self.credentials_type.__name__}, got {type(credentials).__name__}",
            )
        missing = credentials.missing_fields()
        if missing:
            raise ChannelError(
                code="missing_credentials",
                message=f"missing {', '.join(missing)}",
                details={"channel": self.get_name(), "missing": missing},
            )

    def _failure(self, error: str, attempts: int) -> DeliveryResult:
        return DeliveryResult(
            channel=self.get_name(), success=False, error=error, attempts=attempts
        )

    def _success(self, attempts: int) -> DeliveryResult:
        return DeliveryResult(
            channel=self.get_name(), success=True, error=None, attempts=attempts
        )


class _HttpChannel(_BaseChannel):
    """Base for channels delivered with a single HTTP POST."""

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 10.0,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(retry_config, timeout, simulation_mode)
        self._transport = transport

    async def send(
        self, message: RenderedMessage, credentials: ChannelCredentials
    ) -> DeliveryResult:
        """Send the message via the channel's HTTP endpoint."""
        if self._simulation_mode:
            # In simulation mode, return success without making network request
            return self._success(attempts=0)

        try:
            self._check_credentials(credentials)
        except ChannelError as e:
            return self._failure(e.message, attempts=0)

        try:
            request = self._build_request(message, credentials)
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:

                async def post() -> httpx.Response:
                    response = await client.post(**request)
                    if self._retry_manager.is_retryable_status(response.status_code):
                        response.raise_for_status()
                    return response

                outcome = await self._retry_manager.execute_with_retry(post)
        except Exception as e:
            return self._failure(describe_error(e), attempts=1)

        if not outcome.success:
            return self._failure(describe_error(outcome.last_error), outcome.attempts)

        try:
            self._check_response(outcome.result)
        except ChannelError as e:
            return self._failure(e.message, outcome.attempts)
        return self._success(outcome.attempts)

    @abstractmethod
    def _build_request(self, message: RenderedMessage, credentials: Any) -> dict:
        """Keyword arguments for ``httpx.AsyncClient.post``."""
        ...

    def _check_response(self, response: httpx.Response) -> None:
        """Raise ChannelError unless the response means delivered."""
        if not response.is_success:
            raise ChannelError(
                code="http_error",
                message=f"HTTP {response.status_code}: {_snippet(response)}",
                details={"status_code": response.status_code},
            )

    def _json(self, response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            raise ChannelError(
                code="malformed_response",
                message=f"malformed response: {_snippet(response)}",
            )
        if not isinstance(data, dict):
            raise ChannelError(
                code="malformed_response",
                message=f"malformed response: {_snippet(response)}",
            )
        return data


class TelegramChannel(_HttpChannel):
    """Telegram notification channel using the Bot API."""

    channel = ChannelTag.TELEGRAM
    credentials_type = TelegramCredentials
    BASE_URL = "https://api.telegram.org"

    def _build_request(self, message: RenderedMessage, credentials: TelegramCredentials) -> dict:
        return {
            "url": f"{self.BASE_URL}/bot{credentials.bot_token}/sendMessage",
            "json": {
                "chat_id": credentials.chat_id,
                "text": message.body,
                "parse_mode": "HTML",
            },
        }

    def _check_response(self, response: httpx.Response) -> None:
        if not response.is_success:
            # Telegram explains 4xx failures in the description field
            try:
                description = response.json().get("description")
            except (ValueError, AttributeError):
                description = None
            raise ChannelError(
                code="http_error",
                message=f"HTTP {response.status_code}: {description or _snippet(response)}",
                details={"status_code": response.status_code},
            )
        data = self._json(response)
        if data.get("ok") is not True:
            raise ChannelError(
                code="vendor_error",
                message=f"Telegram rejected message: {data.get('description', 'ok=false')}",
            )


class WeChatChannel(_HttpChannel):
    """WeChat push channel through ServerChan."""

    channel = ChannelTag.WECHAT
    credentials_type = WeChatCredentials
    BASE_URL = "https://sctapi.ftqq.com"

    def _build_request(self, message: RenderedMessage, credentials: WeChatCredentials) -> dict:
        return {
            "url": f"{self.BASE_URL}/{credentials.send_key}.send",
            "data": {"title": message.title, "desp": message.body},
        }

    def _check_response(self, response: httpx.Response) -> None:
        super()._check_response(response)
        data = self._json(response)
        if data.get("code") != 0:
            raise ChannelError(
                code="vendor_error",
                message=f"ServerChan error {data.get('code')}: {data.get('message', '')}".rstrip(": "),
            )


class QQChannel(_HttpChannel):
    """QQ push channel through Qmsg."""

    channel = ChannelTag.QQ
    credentials_type = QQCredentials
    BASE_URL = "https://qmsg.zendee.cn"

    def _build_request(self, message: RenderedMessage, credentials: QQCredentials) -> dict:
        return {
            "url": f"{self.BASE_URL}/send/{credentials.key}",
            "data": {"msg": message.body, "qq": credentials.qq_number},
        }

    def _check_response(self, response: httpx.Response) -> None:
        super()._check_response(response)
        data = self._json(response)
        if data.get("success") is not True:
            raise ChannelError(
                code="vendor_error",
                message=f"Qmsg error: {data.get('reason', 'success=false')}",
            )


class WebhookChannel(_HttpChannel):
    """Generic webhook channel using an HTTP POST with a JSON document."""

    channel = ChannelTag.WEBHOOK
    credentials_type = WebhookCredentials

    def _build_request(self, message: RenderedMessage, credentials: WebhookCredentials) -> dict:
        return {
            "url": credentials.url,
            "json": {
                "title": message.title,
                "text": message.body,
                "warning_days": message.warning_days,
                "domains": [
                    {
                        "domain": item.domain.name,
                        "registrar": item.domain.registrar,
                        "expires_on": item.domain.expires_on.isoformat(),
                        "days_remaining": item.days_remaining,
                        "renewal_url": item.domain.renewal_url,
                    }
                    for item in message.domains
                ],
            },
            "headers": {"Content-Type": "application/json"},
        }


class EmailChannel(_BaseChannel):
    """Email notification channel using the operator's SMTP relay."""

    channel = ChannelTag.EMAIL
    credentials_type = EmailCredentials

    def __init__(
        self,
        smtp_config: Optional[SmtpConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 10.0,
        simulation_mode: bool = False,
    ) -> None:
        """
        Initialize Email channel.

        Args:
            smtp_config: SMTP relay settings; without them delivery fails
            retry_config: Local retry behavior
            timeout: SMTP socket timeout in seconds
            simulation_mode: If True, no SMTP connection is made
        """
        super().__init__(retry_config, timeout, simulation_mode)
        self._smtp = smtp_config

    async def send(
        self, message: RenderedMessage, credentials: ChannelCredentials
    ) -> DeliveryResult:
        """Send the message via email."""
        if self._simulation_mode:
            return self._success(attempts=0)

        try:
            self._check_credentials(credentials)
        except ChannelError as e:
            return self._failure(e.message, attempts=0)

        if self._smtp is None:
            return self._failure("SMTP relay not configured", attempts=0)

        # Run SMTP in executor to avoid blocking
        loop = asyncio.get_running_loop()

        async def deliver() -> None:
            await loop.run_in_executor(
                None, self._send_sync, message, credentials.recipient
            )

        outcome = await self._retry_manager.execute_with_retry(
            deliver, is_retryable=self._is_transient
        )
        if not outcome.success:
            return self._failure(describe_error(outcome.last_error), outcome.attempts)
        return self._success(outcome.attempts)

    @staticmethod
    def _is_transient(error: Exception) -> bool:
        return isinstance(
            error,
            (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, TimeoutError, ConnectionError),
        )

    def _send_sync(self, message: RenderedMessage, recipient: str) -> None:
        """Synchronous email sending."""
        smtp = self._smtp
        msg = self._format_email(message, recipient)

        with smtplib.SMTP(smtp.host, smtp.port, timeout=self._timeout) as server:
            if smtp.use_tls:
                server.starttls(context=ssl.create_default_context())
            if smtp.username:
                server.login(smtp.username, smtp.password)
            server.sendmail(
                msg["From"],
                [recipient],
                msg.as_string(),
            )

    def _format_email(self, message: RenderedMessage, recipient: str) -> MIMEText:
        msg = MIMEText(message.body, "plain", "utf-8")
        msg["From"] = self._smtp.from_address or self._smtp.username
        msg["To"] = recipient
        msg["Subject"] = message.title
        return msg


def create_adapters(
    config: SystemConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict[ChannelTag, ChannelAdapter]:
    """
    Build the default adapter registry from configuration.

    Args:
        config: System configuration (retry, timeouts, SMTP, simulation mode)
        transport: Optional httpx transport shared by the HTTP channels

    Returns:
        Mapping from channel tag to adapter
    """
    http_kwargs = {
        "retry_config": config.retry,
        "timeout": config.delivery.timeout_seconds,
        "simulation_mode": config.simulation_mode,
        "transport": transport,
    }
    return {
        ChannelTag.TELEGRAM: TelegramChannel(**http_kwargs),
        ChannelTag.WECHAT: WeChatChannel(**http_kwargs),
        ChannelTag.QQ: QQChannel(**http_kwargs),
        ChannelTag.WEBHOOK: WebhookChannel(**http_kwargs),
        ChannelTag.EMAIL: EmailChannel(
            smtp_config=config.smtp,
            retry_config=config.retry,
            timeout=config.delivery.timeout_seconds,
            simulation_mode=config.simulation_mode,
        ),
    }
