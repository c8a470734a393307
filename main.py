from astrbot.api.all import *
from astrbot.api.event import filter
import os
import asyncio
from .l4d2_query import L4D2Server
from .config_manager import ConfigManager

@register("l4d2_query", "YourName", "L4D2服务器查询插件", "1.1.0")
class L4D2Plugin(Star):
    def __init__(self, context: Context):
        super().__init__(context)
        self.config_path = os.path.join(os.path.dirname(__file__), "config.json")
        self.cfg = ConfigManager(self.config_path)

    def _get_group_id(self, event: AstrMessageEvent):
        group_id = getattr(event.message_obj, "group_id", None)
        return str(group_id) if group_id else None

    def _make_server(self, conf) -> L4D2Server:
        return L4D2Server(conf["name"], conf["address"], timeout=self.cfg.get_timeout())

    @filter.regex(r"^查询\s*(.+)$")
    async def query_server(self, event: AstrMessageEvent, *args, **kwargs):
        """查询指定L4D2服务器状态。用法：查询 [服务器名]"""
        group_id = self._get_group_id(event)
        if not group_id or not self.cfg.get_group_config(group_id):
            # 如果不在配置的群组中，不响应
            return

        server_name = event.message_str.replace("查询", "", 1).strip()
        if not server_name:
            yield event.plain_result("请输入服务器名称，例如：查询 主服务器")
            return

        server_config = self.cfg.get_server_by_name(group_id, server_name)
        if not server_config:
            # 未找到服务器，静默返回
            return

        server = self._make_server(server_config)

        yield event.plain_result(f"正在查询 {server_config['name']}，请稍候...")

        loop = asyncio.get_running_loop()
        info = await loop.run_in_executor(None, server.query_info)

        if not info:
            yield event.plain_result(f"无法连接到服务器 {server_config['name']}，可能服务器离线或网络问题。")
            return

        players = await loop.run_in_executor(None, server.query_players)

        msg = f"服务器: {info['server_name']}\n"
        msg += f"地图: {info['map_name']}\n"
        msg += f"人数: {info['player_count']}/{info['max_players']}\n"
        msg += f"延迟: {info['ping']}ms\n"

        if players:
            msg += "\n在线玩家:\n"
            for p in players:
                msg += f"- {p['name']} ({_format_duration(p['duration'])})\n"
        else:
            msg += "\n当前无玩家在线。"

        yield event.plain_result(msg)

    @filter.regex(r"^综合查询$")
    async def query_all(self, event: AstrMessageEvent, *args, **kwargs):
        """查询所有配置的L4D2服务器简略状态"""
        group_id = self._get_group_id(event)
        if not group_id or not self.cfg.get_group_config(group_id):
            return

        servers_config = self.cfg.get_servers(group_id)
        if not servers_config:
            yield event.plain_result("本群未配置任何服务器。")
            return

        yield event.plain_result("正在查询所有服务器状态...")

        loop = asyncio.get_running_loop()
        # 每个服务器各自一条连接，互不影响，可以并发查询
        tasks = [
            loop.run_in_executor(None, self._query_server_brief, self._make_server(conf))
            for conf in servers_config
        ]
        results = await asyncio.gather(*tasks)

        online_servers = 0
        total_players = 0
        total_slots = 0
        server_lines = []
        for is_online, p_count, max_p, line in results:
            if is_online:
                online_servers += 1
                total_players += p_count
                total_slots += max_p
            server_lines.append(line)

        msg = "=== L4D2 服务器概览 ===\n"
        msg += f"服务器: {online_servers}/{len(servers_config)} 在线\n"
        msg += f"人数: {total_players}/{total_slots}\n"
        msg += "-" * 25 + "\n"
        for line in server_lines:
            msg += line + "\n"

        yield event.plain_result(msg)

    @filter.regex(r"^(服务器列表|服务器地址|连接指令)$")
    async def list_servers(self, event: AstrMessageEvent, *args, **kwargs):
        """列出所有服务器的连接地址"""
        group_id = self._get_group_id(event)
        if not group_id or not self.cfg.get_group_config(group_id):
            return

        servers_config = self.cfg.get_servers(group_id)
        if not servers_config:
            yield event.plain_result("本群未配置任何服务器。")
            return

        connect_base_url = self.cfg.get_connect_base_url()

        msg = "=== 服务器列表 ===\n"
        if connect_base_url:
            msg += "点击下方链接连接服务器：\n"

        for conf in servers_config:
            if connect_base_url:
                msg += f"[{conf['name']}] {connect_base_url.rstrip('/')}/{conf['address']}\n"
            else:
                msg += f"[{conf['name']}] connect {conf['address']}\n"

        yield event.plain_result(msg)

    def _query_server_brief(self, server: L4D2Server):
        """辅助函数：同步查询单个服务器简略信息"""
        info = server.query_info()
        if info:
            return (True, info['player_count'], info['max_players'], f"[{server.name}] {info['server_name']} {info['player_count']}/{info['max_players']}")
        return (False, 0, 0, f"[{server.name}] 离线或无法连接")

    def _check_permission(self, event: AstrMessageEvent, admin_list: list) -> bool:
        """检查发送者是否在管理员列表中"""
        obj = event.message_obj
        sender = obj.get("sender") if isinstance(obj, dict) else getattr(obj, "sender", None)
        if isinstance(sender, dict):
            user_id = sender.get("user_id")
        else:
            user_id = getattr(sender, "user_id", None)
        return bool(user_id) and str(user_id) in [str(uid) for uid in admin_list]

    def _rcon_target(self, event: AstrMessageEvent, server_name: str):
        """返回 (服务器配置, 错误提示)，静默忽略时两者都为 None"""
        group_id = self._get_group_id(event)
        group_conf = self.cfg.get_group_config(group_id) if group_id else None
        if not group_conf:
            return None, None

        server_config = self.cfg.get_server_by_name(group_id, server_name)
        if not server_config:
            return None, None

        if not self._check_permission(event, group_conf.get("admin_users", [])):
            return None, "权限不足：您不在管理员列表中。"

        if not server_config.get("rcon_password"):
            return None, f"服务器 {server_config['name']} 未配置 RCON 密码。"
        return server_config, None

    async def _run_rcon(self, server_config, command: str) -> str:
        server = self._make_server(server_config)
        loop = asyncio.get_running_loop()
        try:
            # 每次读写都有短超时，这里再加一个总超时兜底
            return await asyncio.wait_for(
                loop.run_in_executor(None, server.execute, server_config["rcon_password"], command),
                timeout=15.0
            )
        except asyncio.TimeoutError:
            return "操作超时：连接服务器耗时过长，请检查服务器状态或网络连接。"

    @filter.regex(r"^rcon\s+(\S+)\s+(.+)$")
    async def rcon_command(self, event: AstrMessageEvent, *args, **kwargs):
        """在指定服务器执行 RCON 指令。用法：rcon [服务器名] [指令]"""
        parts = event.message_str.strip().split(None, 2)
        if len(parts) < 3:
            yield event.plain_result("用法：rcon 服务器名 指令")
            return

        server_config, error = self._rcon_target(event, parts[1])
        if error:
            yield event.plain_result(error)
        if not server_config:
            return

        yield event.plain_result(await self._run_rcon(server_config, parts[2]))

    @filter.regex(r"^重启\s*(.+)$")
    async def restart_server(self, event: AstrMessageEvent, *args, **kwargs):
        """重启指定服务器。用法：重启 [服务器名]"""
        server_name = event.message_str.replace("重启", "", 1).strip()
        if not server_name:
            yield event.plain_result("请输入服务器名称，例如：重启 主服务器")
            return

        server_config, error = self._rcon_target(event, server_name)
        if error:
            yield event.plain_result(error)
        if not server_config:
            return

        yield event.plain_result(f"正在尝试重启 {server_config['name']}...")
        yield event.plain_result(await self._run_rcon(server_config, "_restart"))


def _format_duration(seconds: float) -> str:
    duration = int(seconds)
    m, s = divmod(duration, 60)
    h, m = divmod(m, 60)
    d, h = divmod(h, 24)
    if d > 0:
        return f"{d}:{h:02d}:{m:02d}:{s:02d}"
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"
