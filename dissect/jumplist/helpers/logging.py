from __future__ import annotations

import logging
from typing import Any


class SourceLogAdapter(logging.LoggerAdapter):
    """Prefix every message with the Jump List file it concerns."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return f"{self.extra['source']}: {msg}", kwargs
