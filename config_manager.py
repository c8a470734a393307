import json
import logging
import os
from typing import List, Dict, Any, Optional

logger = logging.getLogger("l4d2_plugin.config")

DEFAULT_TIMEOUT = 2.0


class ConfigManager:
    def __init__(self, config_path: str):
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        if not os.path.exists(self.config_path):
            # 创建默认配置
            default_config = {
                "connect_base_url": "",
                "timeout": DEFAULT_TIMEOUT,
                "groups": {
                    "12345678": {
                        "admin_users": [],
                        "servers": [
                            {"name": "示例服务器", "address": "127.0.0.1:27015", "rcon_password": ""}
                        ]
                    }
                }
            }
            self._save_config(default_config)
            return default_config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            # 配置损坏时不覆盖原文件，按空配置运行
            logger.error(f"Failed to load config {self.config_path}: {e!r}")
            return {}

    def _save_config(self, config: Dict[str, Any]):
        # 确保目录存在
        directory = os.path.dirname(self.config_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(config, f, indent=4, ensure_ascii=False)

    def get_group_config(self, group_id: str) -> Optional[Dict[str, Any]]:
        """返回群配置，未配置的群返回 None"""
        return self.config.get("groups", {}).get(str(group_id))

    def get_servers(self, group_id: str) -> List[Dict[str, str]]:
        """
        返回服务器列表，格式为 [{"name": "ServerName", "address": "IP:Port", "rcon_password": "..."}]
        """
        group = self.get_group_config(group_id) or {}
        return group.get("servers", [])

    def get_server_by_name(self, group_id: str, name: str) -> Optional[Dict[str, str]]:
        # 名字比较时忽略空格
        target = name.replace(" ", "")
        for server in self.get_servers(group_id):
            if server.get("name", "").replace(" ", "") == target:
                return server
        return None

    def get_connect_base_url(self) -> str:
        return self.config.get("connect_base_url", "")

    def get_timeout(self) -> float:
        try:
            return float(self.config.get("timeout", DEFAULT_TIMEOUT))
        except (TypeError, ValueError):
            return DEFAULT_TIMEOUT
