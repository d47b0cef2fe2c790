"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

DEFAULT_PROMPT_TEMPLATES: dict[str, str] = {
    "default": (
        "你是一个乐于助人的微信聊天助手。请用简洁、友好的中文回答用户的问题，"
        "必要时结合工具返回的信息作答。"
    ),
    "translator": (
        "你是一名专业翻译。用户发送中文时翻译成英文，发送其他语言时翻译成中文，"
        "只输出译文，不做额外解释。"
    ),
    "programmer": (
        "你是一名资深软件工程师。回答编程问题时先给出结论，再给出清晰的解释"
        "和可以直接运行的示例代码。"
    ),
    "summarizer": (
        "你是一名信息整理助手。请把用户提供的内容整理成条理清晰的要点，"
        "保留关键数字和结论。"
    ),
}


class Base(BaseModel):
    """Base model that accepts both camelCase and snake_case keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProviderConfig(Base):
    """Completion service configuration."""
    model: str = "gpt-4o-mini"
    api_key: str = ""
    api_base: str | None = None  # OpenAI-compatible endpoint, e.g. a local gateway
    extra_headers: dict[str, str] | None = None
    max_tokens: int = 4096
    temperature: float = 0.7


class HistoryConfig(Base):
    """Per-conversation history configuration."""
    max_length: int = Field(default=20, ge=1)
    path: str = "~/.wxrelay/history.json"

    @property
    def history_path(self) -> Path:
        """Get expanded history file path."""
        return Path(self.path).expanduser()


class PromptsConfig(Base):
    """System prompt templates and the switch command."""
    default: str = "default"
    command: str = "/prompt"  # "/prompt translator" switches the active template
    templates: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PROMPT_TEMPLATES))


class SearchConfig(Base):
    """SearXNG search backend configuration."""
    url: str = "http://localhost:8080"
    max_results: int = 5
    timeout: float = 15.0


class ReaderConfig(Base):
    """URL content reader configuration."""
    max_chars: int = 8000
    timeout: float = 20.0
    news_url: str = "https://api.lbbb.cc/api/60miao"


class FilesConfig(Base):
    """Direct-chat file attachment configuration."""
    max_chars: int = 12000
    timeout: float = 30.0


class WechatConfig(Base):
    """WeChat bridge configuration."""
    bridge_url: str = "ws://localhost:3001"
    bridge_token: str = ""  # Shared token for bridge auth (optional)
    connect_timeout: float = 30.0


class SessionConfig(Base):
    """Session start/reconnect policy."""
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = 5.0


class BrokerConfig(Base):
    """Per-conversation queue configuration."""
    max_queue_size: int = 100
    max_concurrent_turns: int = Field(default=4, ge=1)
    drain_timeout: float = 30.0


class Config(BaseSettings):
    """Root configuration for wxrelay."""
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    prompts: PromptsConfig = Field(default_factory=PromptsConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)
    wechat: WechatConfig = Field(default_factory=WechatConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    broker: BrokerConfig = Field(default_factory=BrokerConfig)

    model_config = ConfigDict(
        env_prefix="WXRELAY_",
        env_nested_delimiter="__"
    )
