"""
全局配置模块
"""
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """系统全局配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 环境
    ENV: str = Field(default="development", description="运行环境")
    DEBUG: bool = Field(default=False, description="调试模式")

    # 引擎配置
    DRIVER_WAIT_MS: int = Field(default=12_000, description="转换执行后等待驱动就绪的最长时间(毫秒)")
    MODEL_DEFINITION_PATH: Optional[Path] = Field(default=None, description="YAML 模型定义文件路径")

    # 日志配置
    LOG_LEVEL: str = Field(default="INFO", description="日志级别")
    LOG_FORMAT: str = Field(default="text", description="日志格式: text, json")
    LOG_FILE: Optional[Path] = Field(default=None, description="日志文件路径")


# 全局配置实例
settings = Settings()
