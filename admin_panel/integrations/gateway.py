"""
External Integrations Gateway

Outbound calls to the third-party services the admin panel talks to:
WhatsApp Business, Google Calendar, Stripe, SendGrid, Twilio, and webhook
targets for Microsoft Teams, Slack and generic automation hooks.

Key Features:
- Per-integration configuration with credentials, base URL and rate limits
- Fixed-window rate limiting per minute and per hour, checked before every call
- Operations return success values (bool, id, payload or None) and never raise;
  failures are logged with the ``IntegrationError.to_dict()`` context
- Connectivity health check reporting healthy/disabled/error per integration
"""

import os
import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

import requests

from admin_panel.monitoring.logging import get_logger
from .exceptions import CollaboratorUnavailable, IntegrationError, RateLimitExceeded

logger = get_logger(__name__)

MINUTE_SECONDS = 60.0
HOUR_SECONDS = 3600.0


@dataclass
class RateLimits:
    requests_per_minute: int
    requests_per_hour: int


@dataclass
class IntegrationConfig:
    """
    Connection settings for one external service.
    """
    name: str
    api_key: str
    base_url: str
    enabled: bool
    rate_limits: RateLimits
    api_secret: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view with credentials redacted."""
        return {
            'name': self.name,
            'base_url': self.base_url,
            'enabled': self.enabled,
            'has_credentials': bool(self.api_key),
            'rate_limits': {
                'requests_per_minute': self.rate_limits.requests_per_minute,
                'requests_per_hour': self.rate_limits.requests_per_hour
            }
        }


@dataclass
class _Window:
    length: float
    count: int = 0
    reset_at: float = 0.0


@dataclass
class _LimiterState:
    minute: _Window = field(default_factory=lambda: _Window(MINUTE_SECONDS))
    hour: _Window = field(default_factory=lambda: _Window(HOUR_SECONDS))


class RateLimiter:
    """
    Fixed-window request budgets per integration.

    A request is admitted only when both the minute and the hour window have
    room; admitted requests count against both.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._states: Dict[str, _LimiterState] = {}
        self._lock = threading.Lock()

    def acquire(self, name: str, limits: RateLimits, operation: str = 'request') -> None:
        """
        Raises:
            RateLimitExceeded: when either window is exhausted
        """
        with self._lock:
            now = self._clock()
            state = self._states.setdefault(name, _LimiterState())

            for window in (state.minute, state.hour):
                if now >= window.reset_at:
                    window.count = 0
                    window.reset_at = now + window.length

            if state.minute.count >= limits.requests_per_minute:
                raise RateLimitExceeded(name, operation, 'minute', limits.requests_per_minute)
            if state.hour.count >= limits.requests_per_hour:
                raise RateLimitExceeded(name, operation, 'hour', limits.requests_per_hour)

            state.minute.count += 1
            state.hour.count += 1

    def allow(self, name: str, limits: RateLimits) -> bool:
        try:
            self.acquire(name, limits)
        except RateLimitExceeded:
            return False
        return True

    def reset(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                self._states.clear()
            else:
                self._states.pop(name, None)


class ExternalIntegrationsManager:
    """
    Registry and client for every outbound integration.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        rate_limiter: Optional[RateLimiter] = None,
        sender_email: str = 'noreply@admin-panel.local',
        sender_name: str = 'Admin Panel',
        sms_from: Optional[str] = None,
        calendar_timezone: str = 'Europe/Rome',
        app_url: Optional[str] = None
    ):
        self._session = session or requests.Session()
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()
        self.sender_email = sender_email
        self.sender_name = sender_name
        self.sms_from = sms_from
        self.calendar_timezone = calendar_timezone
        self.app_url = app_url
        self._integrations: Dict[str, IntegrationConfig] = {}

    # Configuration

    def configure_integration(self, key: str, config: IntegrationConfig) -> None:
        self._integrations[key] = config
        logger.info("Integration configured", integration=key, enabled=config.enabled)

    def get_integration(self, key: str) -> Optional[IntegrationConfig]:
        return self._integrations.get(key)

    def list_integrations(self) -> Dict[str, Dict[str, Any]]:
        return {key: config.to_dict() for key, config in self._integrations.items()}

    def initialize_integrations(self, env: Optional[Mapping[str, str]] = None) -> List[str]:
        """
        Register the standard integrations from environment credentials.

        Each integration is enabled iff its credentials are present.

        Returns:
            Keys of the enabled integrations
        """
        env = os.environ if env is None else env

        whatsapp_token = env.get('WHATSAPP_TOKEN', '')
        phone_number_id = env.get('WHATSAPP_PHONE_NUMBER_ID', '')
        self.configure_integration('whatsapp', IntegrationConfig(
            name='WhatsApp Business',
            api_key=whatsapp_token,
            base_url=f'https://graph.facebook.com/v18.0/{phone_number_id}',
            enabled=bool(whatsapp_token and phone_number_id),
            rate_limits=RateLimits(requests_per_minute=80, requests_per_hour=1000)
        ))

        calendar_token = env.get('GOOGLE_CALENDAR_TOKEN', '')
        self.configure_integration('google_calendar', IntegrationConfig(
            name='Google Calendar',
            api_key=calendar_token,
            base_url='https://www.googleapis.com/calendar/v3',
            enabled=bool(calendar_token),
            rate_limits=RateLimits(requests_per_minute=100, requests_per_hour=10000)
        ))

        stripe_key = env.get('STRIPE_SECRET_KEY', '')
        self.configure_integration('stripe', IntegrationConfig(
            name='Stripe Payments',
            api_key=stripe_key,
            base_url='https://api.stripe.com/v1',
            enabled=bool(stripe_key),
            rate_limits=RateLimits(requests_per_minute=100, requests_per_hour=1000)
        ))

        sendgrid_key = env.get('SENDGRID_API_KEY', '')
        self.configure_integration('sendgrid', IntegrationConfig(
            name='SendGrid Email',
            api_key=sendgrid_key,
            base_url='https://api.sendgrid.com/v3',
            enabled=bool(sendgrid_key),
            rate_limits=RateLimits(requests_per_minute=600, requests_per_hour=10000)
        ))

        twilio_sid = env.get('TWILIO_ACCOUNT_SID', '')
        twilio_token = env.get('TWILIO_AUTH_TOKEN', '')
        self.configure_integration('twilio', IntegrationConfig(
            name='Twilio SMS',
            api_key=twilio_sid,
            api_secret=twilio_token,
            base_url='https://api.twilio.com/2010-04-01',
            enabled=bool(twilio_sid and twilio_token),
            rate_limits=RateLimits(requests_per_minute=60, requests_per_hour=1000)
        ))

        if env.get('TWILIO_FROM_NUMBER'):
            self.sms_from = env['TWILIO_FROM_NUMBER']

        enabled = [key for key, config in self._integrations.items() if config.enabled]
        logger.info("External integrations initialized", enabled=enabled)
        return enabled

    # Request plumbing

    def _acquire(self, key: str, operation: str) -> IntegrationConfig:
        config = self._integrations.get(key)
        if config is None:
            raise CollaboratorUnavailable(f"{key} is not configured", key, operation)

        self.rate_limiter.acquire(key, config.rate_limits, operation)

        if not config.enabled:
            raise CollaboratorUnavailable(f"{config.name} is disabled", key, operation)
        return config

    def _execute(
        self,
        service: str,
        operation: str,
        send: Callable[[], requests.Response]
    ) -> Optional[requests.Response]:
        """
        Run ``send`` and translate every failure into a logged ``None``.
        """
        try:
            try:
                response = send()
            except requests.RequestException as e:
                raise CollaboratorUnavailable(
                    f"{service} request failed", service, operation, cause=e
                ) from e

            if not response.ok:
                raise CollaboratorUnavailable(
                    f"{service} returned HTTP {response.status_code}",
                    service,
                    operation,
                    status_code=response.status_code
                )
        except IntegrationError as e:
            logger.error("Integration call failed", **e.to_dict())
            return None

        logger.info("Integration call succeeded", service_name=service, operation=operation)
        return response

    def _configured_call(
        self,
        key: str,
        operation: str,
        build: Callable[[IntegrationConfig], requests.Response]
    ) -> Optional[requests.Response]:
        try:
            config = self._acquire(key, operation)
        except RateLimitExceeded as e:
            logger.warning("Integration rate limit reached", **e.to_dict())
            return None
        except IntegrationError as e:
            logger.error("Integration call failed", **e.to_dict())
            return None
        return self._execute(key, operation, lambda: build(config))

    @staticmethod
    def _bearer(config: IntegrationConfig) -> Dict[str, str]:
        return {'Authorization': f'Bearer {config.api_key}'}

    # WhatsApp Business

    def send_whatsapp_message(
        self,
        to: str,
        message: str,
        message_type: str = 'text',
        template_name: str = 'appointment_reminder',
        language: str = 'it'
    ) -> bool:
        payload: Dict[str, Any] = {
            'messaging_product': 'whatsapp',
            'to': re.sub(r'\D', '', to),
            'type': message_type,
        }
        if message_type == 'template':
            payload['template'] = {
                'name': template_name,
                'language': {'code': language},
                'components': [{'type': 'body', 'parameters': [{'type': 'text', 'text': message}]}]
            }
        else:
            payload['text'] = {'body': message}

        response = self._configured_call(
            'whatsapp',
            'send_message',
            lambda config: self._session.post(
                f'{config.base_url}/messages',
                json=payload,
                headers=self._bearer(config),
                timeout=self.timeout
            )
        )
        return response is not None

    # Google Calendar

    def create_calendar_event(self, appointment: Mapping[str, Any]) -> Optional[str]:
        """
        Create a calendar event for an appointment.

        Args:
            appointment: Mapping with patient_name, type, notes, date (YYYY-MM-DD),
                start_time and end_time (HH:MM), staff_email and patient_email

        Returns:
            Created event id, or None on failure
        """
        try:
            start = f"{appointment['date']}T{appointment['start_time']}:00"
            end = f"{appointment['date']}T{appointment['end_time']}:00"
        except KeyError as e:
            logger.error("Integration call failed", **CollaboratorUnavailable(
                f"Appointment is missing {e.args[0]}", 'google_calendar', 'create_event'
            ).to_dict())
            return None

        attendees = [
            {'email': email}
            for email in (appointment.get('staff_email'), appointment.get('patient_email'))
            if email
        ]
        event = {
            'summary': f"Appointment: {appointment.get('patient_name', '')}",
            'description': f"Type: {appointment.get('type', '')}\nNotes: {appointment.get('notes') or 'No notes'}",
            'start': {
                'dateTime': start,
                'timeZone': self.calendar_timezone
            },
            'end': {
                'dateTime': end,
                'timeZone': self.calendar_timezone
            },
            'attendees': attendees,
            'reminders': {
                'useDefault': False,
                'overrides': [
                    {'method': 'email', 'minutes': 24 * 60},
                    {'method': 'popup', 'minutes': 30}
                ]
            }
        }

        response = self._configured_call(
            'google_calendar',
            'create_event',
            lambda config: self._session.post(
                f'{config.base_url}/calendars/primary/events',
                json=event,
                headers=self._bearer(config),
                timeout=self.timeout
            )
        )
        if response is None:
            return None

        try:
            return response.json().get('id')
        except ValueError:
            logger.error("Calendar response was not JSON", operation='create_event')
            return None

    # Stripe

    def create_payment_intent(
        self,
        amount: float,
        currency: str = 'EUR',
        metadata: Optional[Mapping[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Create a Stripe payment intent.

        Args:
            amount: Amount in major currency units; sent to Stripe in cents

        Returns:
            Payment intent payload, or None on failure
        """
        form = {
            'amount': str(int(round(amount * 100))),
            'currency': currency.lower(),
            'automatic_payment_methods[enabled]': 'true',
        }
        for key, value in (metadata or {}).items():
            form[f'metadata[{key}]'] = str(value)

        response = self._configured_call(
            'stripe',
            'create_payment_intent',
            lambda config: self._session.post(
                f'{config.base_url}/payment_intents',
                data=form,
                headers=self._bearer(config),
                timeout=self.timeout
            )
        )
        if response is None:
            return None

        try:
            return response.json()
        except ValueError:
            logger.error("Stripe response was not JSON", operation='create_payment_intent')
            return None

    # SendGrid

    def send_email(
        self,
        to: List[str],
        subject: str,
        html_content: str,
        attachments: Optional[List[Dict[str, Any]]] = None
    ) -> bool:
        payload = {
            'personalizations': [{
                'to': [{'email': email} for email in to],
                'subject': subject
            }],
            'from': {'email': self.sender_email, 'name': self.sender_name},
            'content': [{'type': 'text/html', 'value': html_content}],
        }
        if attachments:
            payload['attachments'] = attachments

        response = self._configured_call(
            'sendgrid',
            'send_email',
            lambda config: self._session.post(
                f'{config.base_url}/mail/send',
                json=payload,
                headers=self._bearer(config),
                timeout=self.timeout
            )
        )
        return response is not None

    # Twilio

    def send_sms(self, to: str, message: str) -> bool:
        if not self.sms_from:
            logger.error("Integration call failed", **CollaboratorUnavailable(
                "No sender number configured", 'twilio', 'send_sms'
            ).to_dict())
            return False

        response = self._configured_call(
            'twilio',
            'send_sms',
            lambda config: self._session.post(
                f'{config.base_url}/Accounts/{config.api_key}/Messages.json',
                data={'From': self.sms_from, 'To': to, 'Body': message},
                auth=(config.api_key, config.api_secret or ''),
                timeout=self.timeout
            )
        )
        return response is not None

    # Webhook targets

    def send_teams_notification(
        self,
        webhook_url: str,
        title: str,
        message: str,
        color: str = '0078D4'
    ) -> bool:
        card: Dict[str, Any] = {
            '@type': 'MessageCard',
            '@context': 'https://schema.org/extensions',
            'summary': title,
            'themeColor': color,
            'sections': [{
                'activityTitle': title,
                'activitySubtitle': self.sender_name,
                'text': message,
                'markdown': True
            }]
        }
        if self.app_url:
            card['potentialAction'] = [{
                '@type': 'OpenUri',
                'name': 'Open admin panel',
                'targets': [{'os': 'default', 'uri': self.app_url}]
            }]

        response = self._execute(
            'teams',
            'send_notification',
            lambda: self._session.post(webhook_url, json=card, timeout=self.timeout)
        )
        return response is not None

    def send_slack_message(
        self,
        webhook_url: str,
        channel: str,
        message: str,
        username: str = 'Admin Panel Bot'
    ) -> bool:
        payload = {
            'channel': channel,
            'username': username,
            'icon_emoji': ':hospital:',
            'text': message,
            'attachments': [{
                'color': 'good',
                'fields': [
                    {'title': 'System', 'value': self.sender_name, 'short': True},
                    {'title': 'Timestamp', 'value': datetime.now(timezone.utc).isoformat(), 'short': True}
                ]
            }]
        }

        response = self._execute(
            'slack',
            'send_message',
            lambda: self._session.post(webhook_url, json=payload, timeout=self.timeout)
        )
        return response is not None

    def trigger_webhook(self, webhook_url: str, data: Mapping[str, Any]) -> bool:
        payload = {
            **data,
            'source': self.sender_name,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        response = self._execute(
            'webhook',
            'trigger',
            lambda: self._session.post(webhook_url, json=payload, timeout=self.timeout)
        )
        return response is not None

    # Health

    def check_integrations_health(self) -> Dict[str, Dict[str, Any]]:
        """
        Probe every configured integration's base URL.

        Returns:
            Per integration: ``status`` (healthy/disabled/error), ``message``
            and, for probed integrations, ``last_check`` plus ``error`` on failure
        """
        health: Dict[str, Dict[str, Any]] = {}

        for key, config in self._integrations.items():
            if not config.enabled:
                health[key] = {'status': 'disabled', 'message': 'Integration disabled'}
                continue

            last_check = datetime.now(timezone.utc).isoformat()
            try:
                try:
                    response = self._session.head(config.base_url, timeout=self.timeout)
                except requests.RequestException as e:
                    raise CollaboratorUnavailable(
                        f"{config.name} unreachable", key, 'health_check', cause=e
                    ) from e

                if not response.ok:
                    raise CollaboratorUnavailable(
                        f"HTTP {response.status_code}", key, 'health_check',
                        status_code=response.status_code
                    )

                health[key] = {'status': 'healthy', 'message': 'Connection OK', 'last_check': last_check}

            except CollaboratorUnavailable as e:
                logger.warning("Integration health check failed", **e.to_dict())
                entry = {'status': 'error', 'message': e.message, 'last_check': last_check}
                if e.status_code is None:
                    entry['message'] = 'Connection failed'
                    entry['error'] = e.error_context.get('cause', e.message)
                health[key] = entry

        return health

    def close(self) -> None:
        self._session.close()


__all__ = [
    'RateLimits',
    'IntegrationConfig',
    'RateLimiter',
    'ExternalIntegrationsManager'
]
