import logging
from typing import Dict, Any, List, Optional

from steamserver import (ConnectOptions, ProtocolError, RCONAuthFailed,
                         SteamError, TransportError, TransportTimeout, connect)

logger = logging.getLogger("l4d2_plugin.query")


class L4D2Server:
    def __init__(self, name: str, address: str, timeout: float = 2.0, dial=None):
        self.name = name
        self.address = address
        self.timeout = timeout
        # 测试时可注入假的 dial
        self.dial = dial

    def _options(self, password: str = "") -> ConnectOptions:
        return ConnectOptions(dial=self.dial, rcon_password=password,
                              timeout=self.timeout, dial_timeout=self.timeout)

    def query_info(self) -> Optional[Dict[str, Any]]:
        """查询服务器基本信息，离线返回 None"""
        try:
            with connect(self.address, self._options()) as server:
                info = server.info()
        except (SteamError, ValueError) as e:
            logger.warning(f"[{self.name}] info query failed: {e}")
            return None
        return {
            "server_name": info.server_name,
            "map_name": info.map_name,
            "player_count": info.player_count,
            "max_players": info.max_players,
            "ping": int(info.ping * 1000)
        }

    def query_players(self) -> Optional[List[Dict[str, Any]]]:
        """查询玩家列表"""
        try:
            with connect(self.address, self._options()) as server:
                players = server.players_info()
        except (SteamError, ValueError) as e:
            logger.warning(f"[{self.name}] players query failed: {e}")
            return None
        # 过滤掉名字为空的玩家（有时是连接中的玩家或机器人）
        return [{"name": p.name, "score": p.score, "duration": p.duration} for p in players if p.name]

    def execute(self, password: str, command: str) -> str:
        """通过 RCON 执行指令，返回给用户看的文本"""
        # 1. 建立连接并认证
        try:
            server = connect(self.address, self._options(password))
        except RCONAuthFailed:
            return "RCON 认证失败：密码错误。"
        except TransportError as e:
            return f"连接失败: 无法连接到服务器 ({type(e).__name__})。请检查服务器是否在线。"
        except ValueError as e:
            return f"服务器地址配置错误: {e}"
        except SteamError as e:
            return f"连接异常: {type(e).__name__} - {e}"

        # 2. 连接成功，发送指令
        try:
            response = server.send(command)
        except TransportTimeout:
            # 重启指令会让服务器直接断开，收不到结束标记是正常的
            if command == "_restart":
                return "指令已发送。服务器正在重启..."
            return "指令发送后等待响应超时，可能服务器已崩溃或重启。"
        except TransportError:
            if command == "_restart":
                return "指令已发送。服务器正在重启..."
            return "指令发送后连接断开，可能服务器已崩溃或重启。"
        except ProtocolError as e:
            return f"服务器响应不符合 RCON 协议: {e}"
        except SteamError as e:
            return f"指令执行出错: {type(e).__name__} - {e}"
        finally:
            # 确保关闭连接
            server.close()

        if not response.strip():
            if command == "_restart":
                return "指令已发送。服务器正在重启..."
            return "指令已发送。服务器无文本响应。"
        return f"服务器响应: {response}"

    def restart(self, password: str) -> str:
        """通过 RCON 重启服务器 (发送 _restart 指令)"""
        return self.execute(password, "_restart")
