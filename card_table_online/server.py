from __future__ import annotations
import queue
import socket
import threading
import uuid
from typing import Protocol

from card_table.config import tweak
from card_table.handlers import Table_Context, dispatch, handle_connect, handle_disconnect
from card_table.logging_utils import get_logger, log_message
from card_table.messages import Envelope, To_All, To_Client, Protocol_Error
from card_table_online.protocol import send_message, recv_message

log = get_logger("table.server")


class Connection(Protocol):
    client_id: str

    def send(self, message: dict) -> None: ...
    def close(self) -> None: ...


class Socket_Connection:
    """
    Frames are written by a per-connection writer thread, so a peer that stops
    reading never blocks the processing loop. Once its outbox is full, send()
    fails and the dispatcher drops the peer.
    """

    def __init__(self, client_id: str, sock: socket.socket, max_pending: int | None = None):
        self.client_id = client_id
        self.sock = sock
        self.outbox: queue.Queue = queue.Queue(maxsize=max_pending or tweak["max_pending_messages"])
        self.closed = False

    def start(self) -> None:
        threading.Thread(target=self.write_forever, daemon=True).start()

    def send(self, message: dict) -> None:
        if self.closed:
            raise ConnectionError(f"{self.client_id} is closed")
        try:
            self.outbox.put_nowait(message)
        except queue.Full:
            raise ConnectionError(f"{self.client_id} is not reading ({self.outbox.maxsize} messages pending)")

    def write_forever(self) -> None:
        while True:
            message = self.outbox.get()
            if message is None or self.closed:
                return
            try:
                send_message(self.sock, message)
            except OSError as e:
                log.debug(f"Writer for {self.client_id} stopped: {e}")
                self.close()
                return

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.outbox.put_nowait(None)  # Wakes the writer
        except queue.Full:
            pass
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already gone
        self.sock.close()


class Broadcast_Dispatcher:
    """Delivers envelopes to the currently connected clients."""

    def __init__(self):
        self.connections: dict[str, Connection] = {}

    def add(self, conn: Connection) -> None:
        self.connections[conn.client_id] = conn

    def remove(self, client_id: str) -> Connection | None:
        return self.connections.pop(client_id, None)

    def recipients(self, envelope: Envelope) -> list[Connection]:
        target = envelope.recipients
        if isinstance(target, To_Client):
            conn = self.connections.get(target.client_id)
            return [conn] if conn is not None else []
        if isinstance(target, To_All):
            return [c for cid, c in self.connections.items() if target.includes(cid)]
        return []

    def deliver(self, envelopes: list[Envelope]) -> None:
        dead = []
        for envelope in envelopes:
            for conn in self.recipients(envelope):
                if conn.client_id in dead:
                    continue
                try:
                    conn.send(envelope.message)
                    log_message(log, "OUT", conn.client_id, envelope.message)
                except OSError as e:
                    log.warning(f"Send to {conn.client_id} failed: {e}")
                    dead.append(conn.client_id)
        # The reader thread notices the closed socket and queues the disconnect.
        for client_id in dead:
            conn = self.remove(client_id)
            if conn is not None:
                conn.close()


class Table_Server:
    """
    One processing loop owns the table. Reader threads only decode frames and
    queue them, so events are applied and broadcast strictly one at a time.
    """

    def __init__(self, ctx: Table_Context | None = None, host: str = "0.0.0.0", port: int = 3000):
        self.ctx = ctx or Table_Context()
        self.host = host
        self.port = port
        self.dispatcher = Broadcast_Dispatcher()
        self.inbox: queue.Queue = queue.Queue()
        self.stop_event = threading.Event()
        self.server_sock: socket.socket | None = None

    # --- Processing loop (the only code touching the table) ---

    def process(self, item: tuple) -> None:
        kind, client_id, payload = item
        if kind == "connect":
            self.dispatcher.add(payload)
            log.info(f"Client connected: {client_id}")
            envelopes = handle_connect(self.ctx, client_id)
        elif kind == "disconnect":
            conn = self.dispatcher.remove(client_id)
            if conn is not None:
                conn.close()
            log.info(f"Client disconnected: {client_id}")
            envelopes = handle_disconnect(self.ctx, client_id)
        elif kind == "message":
            log_message(log, "IN", client_id, payload)
            envelopes = dispatch(self.ctx, client_id, payload)
        else:
            log.warning(f"Unknown inbox item: {kind!r}")
            return
        self.dispatcher.deliver(envelopes)

    def process_forever(self) -> None:
        while not self.stop_event.is_set():
            item = self.inbox.get()
            if item is None:
                break
            try:
                self.process(item)
            except Exception:
                log.exception(f"Error while processing {item[0]} from {item[1]}")

    # --- Network side ---

    def read_client(self, client_id: str, sock: socket.socket) -> None:
        try:
            while True:
                try:
                    data = recv_message(sock)
                except Protocol_Error as e:
                    log.warning(f"Bad frame from {client_id}: {e}")
                    continue
                self.inbox.put(("message", client_id, data))
        except (ConnectionError, OSError) as e:
            log.debug(f"Reader for {client_id} stopped: {e}")
        finally:
            self.inbox.put(("disconnect", client_id, None))

    def accept_forever(self) -> None:
        while not self.stop_event.is_set():
            try:
                conn, addr = self.server_sock.accept()
            except OSError:
                break
            client_id = f"client-{uuid.uuid4().hex[:12]}"
            log.debug(f"Accepted {client_id} from {addr[0]}:{addr[1]}")
            connection = Socket_Connection(client_id, conn)
            connection.start()
            self.inbox.put(("connect", client_id, connection))
            threading.Thread(target=self.read_client, args=(client_id, conn), daemon=True).start()

    def bind(self) -> tuple[str, int]:
        self.server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_sock.bind((self.host, self.port))
        self.server_sock.listen()
        return self.server_sock.getsockname()

    def serve_forever(self) -> None:
        if self.server_sock is None:
            self.bind()
        log.info(f"Table server listening on {self.host}:{self.server_sock.getsockname()[1]}")
        processor = threading.Thread(target=self.process_forever, daemon=True)
        processor.start()
        try:
            self.accept_forever()
        finally:
            self.shutdown()
            processor.join(timeout=1.0)

    def shutdown(self) -> None:
        if self.stop_event.is_set():
            return
        self.stop_event.set()
        self.inbox.put(None)
        if self.server_sock is not None:
            try:
                self.server_sock.shutdown(socket.SHUT_RDWR)  # Wakes a blocked accept()
            except OSError:
                pass
            self.server_sock.close()
        for client_id in list(self.dispatcher.connections):
            conn = self.dispatcher.remove(client_id)
            if conn is not None:
                conn.close()
        log.info("Server shut down.")
