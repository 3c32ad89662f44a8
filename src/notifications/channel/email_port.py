"""Email channel port.

Adapters deliver one message per call. A delivery the provider refuses is
reported in the result, not raised; raising is reserved for transport
failures, which the notifier contains.
"""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: str | None = None,
        to_name: str | None = None,
    ) -> dict:
        """Send one email to ``to`` (shown as ``to_name`` when given).

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
