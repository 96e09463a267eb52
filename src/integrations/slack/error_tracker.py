import logging
from typing import Any, Dict, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class SlackErrorTracker:
    """Posts production error reports to a Slack channel."""

    def __init__(self, token: str, channel: str, client: Optional[WebClient] = None):
        self.client = client or WebClient(token=token)
        self.channel = channel

    @staticmethod
    def _format(report: Dict[str, Any]) -> str:
        lines = [f"[{report.get('severity', 'error')}] {report.get('message', '')}"]
        for key in ("category", "status", "url", "path", "timestamp"):
            value = report.get(key)
            if value not in (None, ""):
                lines.append(f"{key}: {value}")
        return "\n".join(lines)

    def send(self, report: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.chat_postMessage(channel=self.channel, text=self._format(report))
            return response.data
        except SlackApiError as e:
            logger.error("Slack API error while reporting: %s", self._extract_slack_error(e))
            return None

    @staticmethod
    def _extract_slack_error(exc: Exception) -> str:
        response = getattr(exc, "response", None)
        if response is not None:
            data = getattr(response, "data", None)
            if isinstance(data, dict) and data.get("error"):
                return str(data["error"])
        return str(exc)
