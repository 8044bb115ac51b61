"""The ``db`` action: run a trivial query against PostgreSQL or MySQL."""

from __future__ import annotations

import base64
import hashlib
import hmac
import os
import socket
import struct
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping, Protocol

import pymysql

from .helpers import ActionError, _atoi

MAX_IDLE_CONNECTIONS = 32
_ENGINES = ("postgres", "mysql")


class _PostgresError(Exception):
    """An error reported by, or while talking to, a PostgreSQL server."""


class _Connection(Protocol):
    def execute(self, query: str) -> None: ...

    def close(self) -> None: ...


def _error_message(payload: bytes) -> str:
    fields: dict[str, str] = {}
    for item in payload.split(b"\0"):
        if item:
            fields[chr(item[0])] = item[1:].decode(errors="replace")
    return f"pq: {fields.get('M', 'unknown error')}"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


class _Scram:
    """Client side of SCRAM-SHA-256 authentication."""

    def __init__(self, password: str) -> None:
        self._password = password
        self._nonce = _b64(os.urandom(18))
        self._bare = f"n=,r={self._nonce}"
        self._server_signature = b""

    def client_first(self) -> bytes:
        return ("n,," + self._bare).encode()

    def client_final(self, server_first: bytes) -> bytes:
        text = server_first.decode()
        attrs = dict(item.split("=", 1) for item in text.split(","))
        nonce = attrs.get("r", "")
        if not nonce.startswith(self._nonce):
            raise _PostgresError("pq: SCRAM nonce mismatch")
        salt = base64.b64decode(attrs["s"])
        salted = hashlib.pbkdf2_hmac("sha256", self._password.encode(), salt, int(attrs["i"]))
        client_key = hmac.new(salted, b"Client Key", hashlib.sha256).digest()
        stored_key = hashlib.sha256(client_key).digest()
        without_proof = f"c=biws,r={nonce}"
        auth_message = f"{self._bare},{text},{without_proof}".encode()
        signature = hmac.new(stored_key, auth_message, hashlib.sha256).digest()
        proof = bytes(a ^ b for a, b in zip(client_key, signature))
        server_key = hmac.new(salted, b"Server Key", hashlib.sha256).digest()
        self._server_signature = hmac.new(server_key, auth_message, hashlib.sha256).digest()
        return f"{without_proof},p={_b64(proof)}".encode()

    def verify(self, server_final: bytes) -> None:
        attrs = dict(item.split("=", 1) for item in server_final.decode().split(","))
        if "e" in attrs:
            raise _PostgresError(f"pq: SCRAM error: {attrs['e']}")
        received = base64.b64decode(attrs.get("v", ""))
        if not hmac.compare_digest(received, self._server_signature):
            raise _PostgresError("pq: SCRAM server signature mismatch")


class _PostgresConnection:
    """A minimal PostgreSQL client speaking the simple query protocol."""

    def __init__(self, host: str, port: int, user: str, password: str, database: str) -> None:
        self._user = user
        self._password = password
        self._sock = socket.create_connection((host, port))
        try:
            self._startup(database)
        except BaseException:
            self._sock.close()
            raise

    def _send(self, kind: bytes, payload: bytes) -> None:
        self._sock.sendall(kind + struct.pack("!i", len(payload) + 4) + payload)

    def _recv_exact(self, size: int) -> bytes:
        data = bytearray()
        while len(data) < size:
            chunk = self._sock.recv(size - len(data))
            if not chunk:
                raise _PostgresError("pq: unexpected end of stream")
            data += chunk
        return bytes(data)

    def _read(self) -> tuple[bytes, bytes]:
        header = self._recv_exact(5)
        (length,) = struct.unpack("!i", header[1:])
        return header[:1], self._recv_exact(length - 4)

    def _startup(self, database: str) -> None:
        params = b"".join(
            f"{key}\0{value}\0".encode() for key, value in (("user", self._user), ("database", database))
        )
        payload = struct.pack("!i", 196608) + params + b"\0"
        self._sock.sendall(struct.pack("!i", len(payload) + 4) + payload)
        scram: _Scram | None = None
        while True:
            kind, payload = self._read()
            if kind == b"E":
                raise _PostgresError(_error_message(payload))
            if kind == b"Z":
                return
            if kind == b"R":
                scram = self._authenticate(payload, scram)

    def _authenticate(self, payload: bytes, scram: _Scram | None) -> _Scram | None:
        (code,) = struct.unpack("!i", payload[:4])
        data = payload[4:]
        if code == 0:
            return scram
        if code == 3:
            self._send(b"p", self._password.encode() + b"\0")
            return scram
        if code == 5:
            inner = hashlib.md5((self._password + self._user).encode()).hexdigest()
            outer = "md5" + hashlib.md5(inner.encode() + data[:4]).hexdigest()
            self._send(b"p", outer.encode() + b"\0")
            return scram
        if code == 10:
            if b"SCRAM-SHA-256" not in data.split(b"\0"):
                raise _PostgresError("pq: no supported SASL mechanism")
            scram = _Scram(self._password)
            first = scram.client_first()
            self._send(b"p", b"SCRAM-SHA-256\0" + struct.pack("!i", len(first)) + first)
            return scram
        if code in (11, 12) and scram is not None:
            if code == 11:
                self._send(b"p", scram.client_final(data))
            else:
                scram.verify(data)
            return scram
        raise _PostgresError(f"pq: unsupported authentication method {code}")

    def execute(self, query: str) -> None:
        self._send(b"Q", query.encode() + b"\0")
        error: _PostgresError | None = None
        while True:
            kind, payload = self._read()
            if kind == b"E":
                error = _PostgresError(_error_message(payload))
            elif kind == b"Z":
                break
        if error is not None:
            raise error

    def close(self) -> None:
        try:
            self._send(b"X", b"")
        except OSError:
            pass
        finally:
            self._sock.close()


class _MySQLConnection:
    def __init__(self, host: str, port: int, user: str, password: str) -> None:
        self._conn = pymysql.connect(
            host=host, port=port, user=user, password=password, database="testdb"
        )

    def execute(self, query: str) -> None:
        with self._conn.cursor() as cursor:
            cursor.execute(query)

    def close(self) -> None:
        try:
            self._conn.close()
        except pymysql.MySQLError:
            pass


class _Pool:
    """Opens connections lazily and keeps up to ``max_idle`` of them for reuse."""

    def __init__(self, connect: Callable[[], _Connection], max_idle: int) -> None:
        self._connect = connect
        self._max_idle = max_idle
        self._lock = threading.Lock()
        self._idle: list[_Connection] = []

    @contextmanager
    def connection(self) -> Iterator[_Connection]:
        with self._lock:
            conn = self._idle.pop() if self._idle else None
        if conn is None:
            conn = self._connect()
        try:
            yield conn
        except BaseException:
            conn.close()
            raise
        with self._lock:
            if len(self._idle) < self._max_idle:
                self._idle.append(conn)
                return
        conn.close()


_databases: dict[str, _Pool] = {}


def _split_host(host: str, default_port: int) -> tuple[str, int]:
    name, sep, port = host.rpartition(":")
    if sep and port.isdigit():
        return name, int(port)
    return host, default_port


def setup_database_environment(user: str, password: str, postgres_host: str, mysql_host: str) -> None:
    """Configure the PostgreSQL and MySQL pools; connections open on first use."""
    pg_host, pg_port = _split_host(postgres_host, 5432)
    my_host, my_port = _split_host(mysql_host, 3306)
    _databases["postgres"] = _Pool(
        lambda: _PostgresConnection(pg_host, pg_port, user, password, user), MAX_IDLE_CONNECTIONS
    )
    _databases["mysql"] = _Pool(
        lambda: _MySQLConnection(my_host, my_port, user, password), MAX_IDLE_CONNECTIONS
    )


@dataclass
class DatabaseAction:
    """Runs query number ``query`` (only 1, ``SELECT 1``, exists) on ``database``."""

    database: str = ""
    query: int = 0

    def parse_parameters(self, params: Mapping[str, str]) -> None:
        """Read the ``engine`` and ``query`` parameters."""
        engine = params.get("engine")
        if engine is None:
            raise ActionError("engine parameter is missing")
        query = params.get("query")
        if query is None:
            raise ActionError("query parameter is missing")
        self.database = engine
        if engine not in _ENGINES:
            raise ActionError("unknown database")
        try:
            self.query = _atoi(query)
        except ValueError as exc:
            raise ActionError(
                f"failed conversion string to int in DatabaseArguments with: {exc}"
            ) from exc

    def perform(self) -> None:
        """Execute the query."""
        pool = _databases.get(self.database)
        if pool is None:
            raise ActionError("database was not configured")
        if self.query != 1:
            raise ActionError(f"unknown action {self.query}")
        try:
            with pool.connection() as conn:
                conn.execute("SELECT 1")
        except (OSError, pymysql.MySQLError, _PostgresError) as exc:
            raise ActionError(f"failed to execute query: {exc}") from exc