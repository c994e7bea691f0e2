import json
import threading
import time
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from typing import Self

from src.utils.crypto import verify_signature

HEADER_PREFIX = "X-Vikareta"


class _WebhookHandler(BaseHTTPRequestHandler):
    """HTTP request handler for receiving webhooks."""

    def do_POST(self):
        content_length = int(self.headers.get("Content-Length", 0))
        raw = self.rfile.read(content_length)
        body = raw.decode("utf-8")

        server_config = self.server.config  # type: ignore[attr-defined]

        with server_config["lock"]:
            scripted = server_config["scripted"]
            step = scripted.pop(0) if scripted else None
        code, delay = step if step else (server_config["response_code"], server_config["response_delay"])

        # Simulate slow response
        if delay > 0:
            time.sleep(delay)

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, ValueError):
            self._reply(400, {"error": "invalid JSON"})
            return

        event = self.headers.get(f"{HEADER_PREFIX}-Event", "")
        timestamp = self.headers.get(f"{HEADER_PREFIX}-Timestamp", "")
        signature = self.headers.get(f"{HEADER_PREFIX}-Signature", "")

        signature_valid = None
        if server_config["signature_secret"]:
            signature_valid = bool(signature and timestamp) and verify_signature(
                server_config["signature_secret"], timestamp, body, signature
            )

        with server_config["lock"]:
            server_config["received_events"].append({
                "event": event,
                "payload": payload,
                "body": body,
                "headers": dict(self.headers),
                "signature_valid": signature_valid,
            })

        if signature_valid is False:
            self._reply(401, {"error": "invalid signature"})
            return

        self._reply(code, {"status": "ok"} if 200 <= code < 300 else {"status": "error"})

    def _reply(self, code: int, body: dict) -> None:
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        if code != 204:
            self.wfile.write(json.dumps(body).encode())

    def log_message(self, format, *args):
        """Suppress default request logging."""
        pass


class SubscriberEndpointServer:
    """Configurable HTTP server that plays the part of a webhook subscriber."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0, secret: str | None = None):
        self._host = host
        self._port = port
        self._config = {
            "response_code": 200,
            "response_delay": 0,
            "scripted": [],
            "signature_secret": secret,
            "received_events": [],
            "lock": threading.Lock(),
        }
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def set_response_code(self, code: int) -> Self:
        self._config["response_code"] = code
        return self

    def set_response_delay(self, seconds: float) -> Self:
        self._config["response_delay"] = seconds
        return self

    def script_responses(self, *steps: int | tuple[int, float]) -> Self:
        """Queue per-request responses; each step is a code or (code, delay).

        Once the script runs out the default response code and delay apply.
        """
        normalized = [step if isinstance(step, tuple) else (step, 0) for step in steps]
        with self._config["lock"]:
            self._config["scripted"].extend(normalized)
        return self

    def enable_signature_verification(self, secret: str) -> Self:
        self._config["signature_secret"] = secret
        return self

    def start(self) -> None:
        self._server = ThreadingHTTPServer((self._host, self._port), _WebhookHandler)
        self._server.daemon_threads = True
        self._server.config = self._config  # type: ignore[attr-defined]
        # Get the actual port (useful when port=0)
        self._port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}/webhook"

    @property
    def port(self) -> int:
        return self._port

    def get_received_events(self) -> list[dict]:
        with self._config["lock"]:
            return list(self._config["received_events"])

    def get_processed_count(self) -> int:
        with self._config["lock"]:
            return len(self._config["received_events"])

    def clear_events(self) -> None:
        with self._config["lock"]:
            self._config["received_events"].clear()
