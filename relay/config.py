from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

DEFAULT_SYSTEM_PROMPT = """You are having a casual conversation with a friend. Keep the following in mind:

- Be natural and conversational
- Keep responses concise and casual
- If you don't know something, just say so
- Stay on topic and be genuine"""


class Settings(BaseSettings):
    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "wizard-vicuna-uncensored:13b"
    ollama_temperature: float = 0.8
    ollama_top_p: float = 0.9
    ollama_top_k: int = 40
    ollama_timeout: float = 120.0

    # System prompt (file wins once it exists; /prompt rewrites it)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    prompt_path: str = "prompt.txt"

    # Conversation storage
    data_dir: str = ".conversations"
    context_max_turns: int = 10
    context_max_chars: int = 8000  # logged, not enforced

    # Retry
    retry_max_attempts: int = 3
    retry_delay: float = 1.0

    # Transport-facing behaviour
    command_prefix: str = "/"
    allowed_user_ids: Annotated[list[str], NoDecode] = []  # empty = answer everyone

    @field_validator("allowed_user_ids", mode="before")
    @classmethod
    def parse_user_ids(cls, v: object) -> object:
        if isinstance(v, str):
            return [n.strip() for n in v.split(",") if n.strip()]
        if isinstance(v, (int, float)):
            return [str(int(v))]
        return v

    # Logging
    log_level: str = "INFO"
    log_json: bool = True
    log_file: str = "data/relay.log"

    @property
    def ollama_options(self) -> dict:
        return {
            "temperature": self.ollama_temperature,
            "top_p": self.ollama_top_p,
            "top_k": self.ollama_top_k,
        }

    model_config = {"env_file": ".env"}
