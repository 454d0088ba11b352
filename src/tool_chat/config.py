"""Settings read from the environment (``.env`` is loaded by the app)."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_MODEL = "gpt-4.1"
DEFAULT_MAX_ROUNDS = 8


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL
    max_rounds: int = DEFAULT_MAX_ROUNDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        max_rounds = int(os.getenv("TOOL_CHAT_MAX_ROUNDS", DEFAULT_MAX_ROUNDS))
        if max_rounds < 1:
            raise ValueError("TOOL_CHAT_MAX_ROUNDS must be at least 1")
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            model_name=os.getenv("TOOL_CHAT_MODEL", DEFAULT_MODEL),
            max_rounds=max_rounds,
            log_level=os.getenv("TOOL_CHAT_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
