"""
配置模块
提供基于环境变量的应用配置
"""

from .config_service import AppConfig, ConfigService, config_service

__all__ = [
    "AppConfig",
    "ConfigService",
    "config_service",
]
