import struct

from conftest import rcon_frame
from l4d2_query import L4D2Server
from steamserver.rcon_packet import TRAILER

HEADER = b"\xff\xff\xff\xff"


def make(dialer):
    return L4D2Server("主服务器", "127.0.0.1:27015", timeout=0.2, dial=dialer)


def test_query_info_summary(dialer):
    dialer.udp.feed(HEADER + b"A" + struct.pack("<i", 5),
                    HEADER + b"I\x11Versus\x00c5m1_waterfront\x00left4dead2\x00L4D2\x00"
                    + struct.pack("<H", 550) + b"\x04\x08\x00dl\x00\x01" + b"2.2.3.0\x00")
    info = make(dialer).query_info()
    assert info["server_name"] == "Versus"
    assert info["map_name"] == "c5m1_waterfront"
    assert (info["player_count"], info["max_players"]) == (4, 8)
    assert isinstance(info["ping"], int)
    assert dialer.udp.closed


def test_query_info_offline(dialer):
    assert make(dialer).query_info() is None


def test_query_players_skips_unnamed(dialer):
    dialer.udp.feed(HEADER + b"D\x02"
                    + b"\x00Rochelle\x00" + struct.pack("<i", 7) + struct.pack("<f", 120.0)
                    + b"\x01\x00" + struct.pack("<i", 0) + struct.pack("<f", 1.0))
    assert make(dialer).query_players() == [{"name": "Rochelle", "score": 7, "duration": 120.0}]


def test_execute_returns_server_output(dialer):
    server = make(dialer)
    # auth id is random here, so answer whatever id the client picks
    original_sendall = dialer.tcp.sendall

    def reply(data):
        original_sendall(data)
        req_id, req_type = struct.unpack("<ii", data[4:12])
        if req_type == 3:
            dialer.tcp.feed(rcon_frame(req_id, 0), rcon_frame(req_id, 2))
        elif req_type == 2:
            dialer.tcp.feed(rcon_frame(req_id, 0, "hostname: L4D2"))
        else:
            dialer.tcp.feed(rcon_frame(req_id, 0), rcon_frame(req_id, 0, TRAILER))

    dialer.tcp.sendall = reply
    assert server.execute("pw", "hostname") == "服务器响应: hostname: L4D2"
    assert dialer.tcp.closed


def test_execute_wrong_password(dialer):
    def reply(data):
        req_id = struct.unpack("<i", data[4:8])[0]
        dialer.tcp.feed(rcon_frame(req_id, 0), rcon_frame(-1, 2))

    dialer.tcp.sendall = reply
    assert make(dialer).execute("bad", "status") == "RCON 认证失败：密码错误。"


def test_execute_unreachable(dialer):
    dialer.fail["tcp"] = ConnectionRefusedError("refused")
    assert make(dialer).execute("pw", "status").startswith("连接失败")


def test_restart_treats_timeout_as_success(dialer):
    def reply(data):
        req_id, req_type = struct.unpack("<ii", data[4:12])
        if req_type == 3:
            dialer.tcp.feed(rcon_frame(req_id, 0), rcon_frame(req_id, 2))

    dialer.tcp.sendall = reply
    assert make(dialer).restart("pw") == "指令已发送。服务器正在重启..."


def test_bad_port_in_config_counts_as_offline(dialer):
    server = L4D2Server("坏地址", "1.2.3.4:abc", dial=dialer)
    assert server.query_info() is None
    assert server.query_players() is None
    assert server.execute("pw", "status").startswith("服务器地址配置错误")
    assert dialer.calls == []
