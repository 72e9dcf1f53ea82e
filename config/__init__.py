"""
配置模块
"""
from config.settings import settings
from config.model_config import ModelConfig
from config.logging_config import ModelLoggerAdapter, setup_logging

__all__ = [
    "settings",
    "ModelConfig",
    "ModelLoggerAdapter",
    "setup_logging",
]
