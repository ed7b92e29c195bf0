"""
Shared test fixtures and configuration for pytest
"""
import asyncio
import base64
import os
import ssl
import tempfile

# Keep logs and config out of the real home directory
os.environ.setdefault("GLANCE_HOME", tempfile.mkdtemp(prefix="glance-tests-"))

import pytest
import trustme

from src.core.email.smtp.client import SMTPClient
from src.core.email.smtp.models import SMTPCredentials
from src.utils.config_manager import ConfigManager

USERNAME = "reporter@example.com"
PASSWORD = "app-password"

# Reply value that makes the fake server stay silent
STALL = object()


class FakeSMTPServer:
    """Scripted SMTP server on 127.0.0.1 for exercising the real client.

    `replies` overrides the default reply per command verb ("EHLO", "AUTH",
    "MAIL", "RCPT", "DATA", "QUIT") or for the message data ("MESSAGE").
    A value may be a string, a callable taking the command line, or STALL.
    """

    DEFAULT_REPLIES = {
        "EHLO": "250-smtp.example.com Hello\r\n250-AUTH LOGIN PLAIN\r\n250 8BITMIME",
        "AUTH": "334 VXNlcm5hbWU6",
        "MAIL": "250 2.1.0 Sender OK",
        "RCPT": "250 2.1.5 Recipient OK",
        "DATA": "354 Start mail input; end with <CRLF>.<CRLF>",
        "MESSAGE": "250 2.0.0 OK queued as 4F2A",
        "QUIT": "221 2.0.0 Bye",
    }

    def __init__(
        self,
        greeting="220 smtp.example.com ESMTP ready",
        password=PASSWORD,
        replies=None,
        close_after_message=False,
        ssl_context=None,
    ):
        self.greeting = greeting
        self.password = password
        self.replies = dict(self.DEFAULT_REPLIES)
        self.replies.update(replies or {})
        self.close_after_message = close_after_message
        self.ssl_context = ssl_context
        self.commands = []
        self.messages = []
        self.connections = 0
        self.disconnected = asyncio.Event()
        self._server = None
        self.port = None

    async def start(self):
        self._server = await asyncio.start_server(
            self._handle, "127.0.0.1", 0, ssl=self.ssl_context
        )
        self.port = self._server.sockets[0].getsockname()[1]
        return self

    async def stop(self):
        self._server.close()
        await self._server.wait_closed()

    async def wait_for_disconnect(self, timeout=2.0):
        await asyncio.wait_for(self.disconnected.wait(), timeout)

    def _reply_for(self, key, command):
        reply = self.replies[key]
        if callable(reply):
            return reply(command)
        return reply

    @staticmethod
    async def _send(writer, reply):
        writer.write((reply + "\r\n").encode("utf-8"))
        await writer.drain()

    async def _handle(self, reader, writer):
        self.connections += 1
        try:
            await self._converse(reader, writer)
        except (ConnectionError, asyncio.IncompleteReadError, ssl.SSLError):
            pass
        finally:
            writer.close()
            self.disconnected.set()

    async def _converse(self, reader, writer):
        if self.greeting is STALL:
            await reader.read()
            return
        await self._send(writer, self.greeting)

        auth_step = None
        while True:
            line = await reader.readline()
            if not line:
                return
            command = line.decode("utf-8").rstrip("\r\n")
            self.commands.append(command)

            if auth_step == "username":
                auth_step = "password"
                await self._send(writer, "334 UGFzc3dvcmQ6")
                continue
            if auth_step == "password":
                auth_step = None
                accepted = base64.b64decode(command).decode("utf-8") == self.password
                await self._send(
                    writer,
                    "235 2.7.0 Authentication successful"
                    if accepted
                    else "535 5.7.8 Authentication credentials invalid",
                )
                continue

            verb = command.split(" ", 1)[0].upper()
            if verb not in self.replies:
                await self._send(writer, "502 5.5.2 Command not recognized")
                continue

            reply = self._reply_for(verb, command)
            if reply is STALL:
                continue
            await self._send(writer, reply)

            if verb == "QUIT":
                return
            if verb == "AUTH" and reply.startswith("334"):
                auth_step = "username"
            if verb == "DATA" and reply.startswith("354"):
                await self._receive_message(reader, writer)
                if self.close_after_message:
                    return

    async def _receive_message(self, reader, writer):
        lines = []
        while True:
            line = await reader.readline()
            if not line or line == b".\r\n":
                break
            lines.append(line)
        self.messages.append(b"".join(lines).decode("utf-8"))

        reply = self._reply_for("MESSAGE", None)
        if reply is not STALL:
            await self._send(writer, reply)


@pytest.fixture
async def smtp_server_factory():
    """Start fake SMTP servers on demand and stop them afterwards"""
    servers = []

    async def factory(**kwargs):
        server = await FakeSMTPServer(**kwargs).start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        await server.stop()


@pytest.fixture
async def smtp_server(smtp_server_factory):
    """Fake SMTP server with default (accepting) replies"""
    return await smtp_server_factory()


@pytest.fixture
def make_client():
    """Build an SMTPClient pointed at a fake server, with TLS if the server uses it"""

    def factory(server, password=PASSWORD, **kwargs):
        credentials = SMTPCredentials(
            host="127.0.0.1",
            port=server.port,
            username=USERNAME,
            password=password,
            use_tls=server.ssl_context is not None,
        )
        kwargs.setdefault("command_timeout", 5.0)
        return SMTPClient(credentials, **kwargs)

    return factory


@pytest.fixture(scope="session")
def tls_ca():
    """Throwaway certificate authority for implicit TLS tests"""
    return trustme.CA()


@pytest.fixture(scope="session")
def tls_server_context(tls_ca):
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    tls_ca.issue_cert("127.0.0.1", "localhost").configure_cert(context)
    return context


@pytest.fixture(scope="session")
def tls_client_context(tls_ca):
    context = ssl.create_default_context()
    tls_ca.configure_trust(context)
    return context


@pytest.fixture
def config_manager(tmp_path):
    """Fresh ConfigManager singleton backed by a temporary file"""
    ConfigManager._instance = None
    ConfigManager._initialized = False
    manager = ConfigManager(tmp_path / "config.json")
    yield manager
    ConfigManager._instance = None
    ConfigManager._initialized = False
