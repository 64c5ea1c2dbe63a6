import socketserver
import threading

import pytest

from hookwise import create_app
from hookwise.extensions import db
from hookwise.models import Webhook

TEST_CONFIG = {
    "TESTING": True,
    "SQLALCHEMY_DATABASE_URI": "sqlite://",
    "WEBHOOK_BASE_URL": "https://hooks.example.com",
    "EXECUTOR": {"url": "https://executor.example.com", "service_key": "svc-key", "timeout": 5},
    "INSIGHTS_ASYNC": False,
    "REQUIRE_WEBHOOK_SIGNATURE": False,
    "CREDENTIAL_TEST_TIMEOUT": 10,
    "WEBHOOK_TEST_TIMEOUT": 10,
}


@pytest.fixture
def app():
    app = create_app(dict(TEST_CONFIG))
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_webhook(app):
    def _make(automation_id="auto1", token="abc123", secret="whsec-test", is_active=True):
        webhook = Webhook(
            automation_id=automation_id,
            token=token,
            webhook_url=f"https://hooks.example.com/webhook-trigger/{token}?automation_id={automation_id}",
            secret=secret,
            is_active=is_active,
            trigger_count=0,
        )
        db.session.add(webhook)
        db.session.commit()
        return webhook
    return _make


@pytest.fixture
def test_config():
    return dict(TEST_CONFIG)


class _SlowHandler(socketserver.BaseRequestHandler):
    def handle(self):
        self.request.recv(65536)
        stop = self.server.stop
        if self.server.mode == "silent":
            stop.wait(10)
            return
        # "drip": headers straight away, then one body byte every interval
        try:
            self.request.sendall(b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 100\r\n\r\n")
            for _ in range(100):
                if stop.wait(self.server.interval):
                    return
                self.request.sendall(b"x")
        except OSError:
            return


@pytest.fixture
def slow_server():
    """Start a local HTTP endpoint that never answers ("silent") or trickles its body ("drip")."""
    servers = []

    def _start(mode, interval=0.2):
        server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _SlowHandler)
        server.daemon_threads = True
        server.mode = mode
        server.interval = interval
        server.stop = threading.Event()
        threading.Thread(target=server.serve_forever, daemon=True).start()
        servers.append(server)
        host, port = server.server_address
        return f"http://{host}:{port}"

    yield _start
    for server in servers:
        server.stop.set()
        server.shutdown()
        server.server_close()
