"""
Risk Notification System

The monitor hands high-risk reports to a RiskNotifier, which fans them out
to pluggable backends:
- Logger (default)
- File (JSONL audit trail)
- Discord webhook (optional)
- Slack webhook (optional)

Delivery is best effort: every backend reports success as a bool, failures
are logged, and nothing is retried or queued.

Usage:
    from src.risk.notifications import RiskNotifier, LoggingBackend

    notifier = RiskNotifier([LoggingBackend()])
    notifier.notify(RiskNotification.from_report(report, account_id="user-1"))
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

from .config import NotificationConfig
from .schema import Alert, RiskLevel, RiskReport

logger = logging.getLogger(__name__)

load_dotenv()

WEBHOOK_TIMEOUT_SECONDS = 5


@dataclass
class RiskNotification:
    """Payload delivered when an assessment lands in high risk."""
    risk_level: RiskLevel
    risk_score: float
    alerts: List[Alert]
    recommendations: List[str]
    account_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_report(cls, report: RiskReport, account_id: Optional[str] = None) -> "RiskNotification":
        return cls(
            risk_level=report.risk_level,
            risk_score=report.risk_score,
            alerts=report.high_alerts or list(report.alerts),
            recommendations=list(report.recommendations),
            account_id=account_id,
        )

    @property
    def headline(self) -> str:
        return f"Risk level {self.risk_level.value.upper()} (score {self.risk_score:.2f})"

    @property
    def body(self) -> str:
        return "\n".join(f"- {a.message} -> {a.suggestion}" for a in self.alerts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "account_id": self.account_id,
            "risk_level": self.risk_level.value,
            "risk_score": round(self.risk_score, 4),
            "alerts": [a.to_dict() for a in self.alerts],
            "recommendations": self.recommendations,
        }


# =============================================================================
# Backends
# =============================================================================

class NotificationBackend(ABC):
    """Abstract base for notification backends."""

    @abstractmethod
    def send(self, notification: RiskNotification) -> bool:
        """Send notification. Returns True if successful."""
        pass


class LoggingBackend(NotificationBackend):
    """Log notifications at a level matching the risk."""

    def send(self, notification: RiskNotification) -> bool:
        msg = f"[RISK] {notification.headline}"
        if notification.alerts:
            msg += ": " + "; ".join(a.message for a in notification.alerts)

        if notification.risk_level == RiskLevel.HIGH:
            logger.warning(msg)
        else:
            logger.info(msg)
        return True


class FileBackend(NotificationBackend):
    """Append notifications to a JSONL file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def send(self, notification: RiskNotification) -> bool:
        try:
            with self.path.open("a") as f:
                f.write(json.dumps(notification.to_dict(), default=str) + "\n")
            return True
        except OSError as e:
            logger.error(f"Failed to write risk notification to {self.path}: {e}")
            return False


class DiscordWebhookBackend(NotificationBackend):
    """
    Send notifications to a Discord webhook.

    Set DISCORD_WEBHOOK_URL environment variable.
    """

    COLORS = {
        RiskLevel.HIGH: 0xFF0000,
        RiskLevel.MEDIUM: 0xFFA500,
        RiskLevel.LOW: 0x00AA00,
    }

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or os.getenv("DISCORD_WEBHOOK_URL")

    def send(self, notification: RiskNotification) -> bool:
        if not self.webhook_url:
            return False

        payload = {
            "embeds": [{
                "title": notification.headline,
                "description": notification.body or "No alert details",
                "color": self.COLORS.get(notification.risk_level, 0x808080),
                "timestamp": notification.timestamp.isoformat(),
                "footer": {"text": f"Account: {notification.account_id or 'n/a'}"},
            }]
        }

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS)
            return response.status_code in (200, 204)
        except requests.RequestException as e:
            logger.error(f"Failed to send Discord risk notification: {e}")
            return False


class SlackWebhookBackend(NotificationBackend):
    """
    Send notifications to a Slack webhook.

    Set SLACK_WEBHOOK_URL environment variable.
    """

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL")

    def send(self, notification: RiskNotification) -> bool:
        if not self.webhook_url:
            return False

        payload = {"text": f"*{notification.headline}*\n{notification.body}"}

        try:
            response = requests.post(self.webhook_url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS)
            return response.status_code == 200
        except requests.RequestException as e:
            logger.error(f"Failed to send Slack risk notification: {e}")
            return False


# =============================================================================
# Notifier
# =============================================================================

class RiskNotifier:
    """
    Fans a notification out to every backend.

    A failing backend never stops the others and never raises to the caller.
    """

    def __init__(self, backends: Optional[List[NotificationBackend]] = None):
        self.backends: List[NotificationBackend] = (
            backends if backends is not None else [LoggingBackend()]
        )

    @classmethod
    def from_config(cls, config: NotificationConfig) -> "RiskNotifier":
        backends: List[NotificationBackend] = [LoggingBackend()]

        if config.alert_log_path:
            backends.append(FileBackend(Path(config.alert_log_path)))

        if config.enable_discord:
            discord = DiscordWebhookBackend()
            if discord.webhook_url:
                backends.append(discord)
                logger.info("Discord risk notifications enabled")
            else:
                logger.warning("Discord notifications enabled but DISCORD_WEBHOOK_URL is not set")

        if config.enable_slack:
            slack = SlackWebhookBackend()
            if slack.webhook_url:
                backends.append(slack)
                logger.info("Slack risk notifications enabled")
            else:
                logger.warning("Slack notifications enabled but SLACK_WEBHOOK_URL is not set")

        return cls(backends)

    def notify(self, notification: RiskNotification) -> List[bool]:
        """Send to all backends. Returns success/failure per backend."""
        results = []
        for backend in self.backends:
            try:
                results.append(backend.send(notification))
            except Exception as e:
                logger.error(f"Notification backend {type(backend).__name__} failed: {e}")
                results.append(False)
        return results
