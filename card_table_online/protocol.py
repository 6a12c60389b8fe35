from __future__ import annotations
import json
import struct
import socket

from card_table.messages import Protocol_Error

HEADER_SIZE = 4  # 4 bytes for message length (uint32, big-endian)
MAX_MESSAGE_SIZE = 16 * 1024 * 1024


def encode_message(data: dict) -> bytes:
    body = json.dumps(data).encode("utf-8")
    header = struct.pack("!I", len(body))
    return header + body


def send_message(sock: socket.socket, data: dict) -> None:
    sock.sendall(encode_message(data))


def recv_message(sock: socket.socket) -> dict:
    """
    Read one framed message.
    Raises ConnectionError when the stream ends or can no longer be trusted,
    Protocol_Error when a well-framed body is not a JSON object.
    """
    header = _recv_exact(sock, HEADER_SIZE)
    length = struct.unpack("!I", header)[0]
    if length > MAX_MESSAGE_SIZE:
        raise ConnectionError(f"Message too large: {length} bytes")
    body = _recv_exact(sock, length)
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise Protocol_Error(f"Invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise Protocol_Error("Message must be a JSON object")
    return data


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            raise ConnectionError("Connection closed")
        data += chunk
    return data
