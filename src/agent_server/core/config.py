"""
核心配置模块
"""
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """系统配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP 服务
    agent_host: str = Field(default="127.0.0.1")
    agent_port: int = Field(default=8615)
    max_header_bytes: int = Field(default=65536)
    read_chunk_bytes: int = Field(default=65536)
    max_body_bytes: int = Field(default=10 * 1024 * 1024)

    # 动作时序（秒）
    default_timeout: float = Field(default=5.0)
    default_press_duration: float = Field(default=1.0)
    settle_delay: float = Field(default=0.1)
    poll_interval: float = Field(default=0.1)
    text_field_poll_interval: float = Field(default=0.2)
    default_max_swipes: int = Field(default=10)

    # Android 后端
    adb_path: str = Field(default="adb")
    adb_addr: str = Field(default="")
    pkg_name: str = Field(default="")
    overlay_packages: str = Field(default="com.android.systemui")
    dump_cache_ttl: float = Field(default=0.3)
    adb_timeout: float = Field(default=10.0)

    # 日志
    log_level: str = Field(default="INFO")
    log_path: str = Field(default="./logs")
    log_retention_days: int = Field(default=3)
    log_console_enabled: bool = Field(default=True)
    log_file_format: str = Field(default="text")  # text|json
    log_rotation: str = Field(default="00:00")

    @property
    def overlay_package_list(self) -> List[str]:
        """获取系统浮层包名列表"""
        return [p.strip() for p in self.overlay_packages.split(",") if p.strip()]


# 全局配置实例
settings = Settings()
