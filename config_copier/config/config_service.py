"""
配置管理服务
从 CONFIG_COPIER_* 环境变量（可由 .env 提供）加载应用配置
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "CONFIG_COPIER_"


class AppConfig(BaseSettings):
    """应用配置，优先级: 构造参数 > 环境变量 > 默认值"""

    host: str = Field(default="127.0.0.1", description="HTTP 服务监听地址")
    port: int = Field(default=8000, gt=0, lt=65536, description="HTTP 服务端口")
    user_home: Optional[Path] = Field(
        default=None, description="用户主目录，为空时使用 Path.home()"
    )
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="允许跨域访问的前端地址，逗号分隔",
    )
    log_level: str = Field(default="INFO", description="日志级别")

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @property
    def cors_origin_list(self) -> List[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]

    @property
    def resolved_user_home(self) -> Path:
        return self.user_home if self.user_home else Path.home()


class ConfigService:
    """配置管理服务类"""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        """
        从环境变量加载配置

        读取 CONFIG_COPIER_HOST / PORT / USER_HOME / CORS_ORIGINS / LOG_LEVEL，
        未设置或为空的项使用默认值。

        Returns:
            AppConfig: 加载后的配置

        Raises:
            ValueError: 配置值校验失败
        """
        self._config = AppConfig()
        logger.debug(f"Loaded app config: {self._config}")
        return self._config

    def get_config(self) -> AppConfig:
        """获取当前配置，首次调用时从环境变量加载"""
        if self._config is None:
            return self.load()
        return self._config


config_service = ConfigService()
