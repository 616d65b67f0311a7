"""HTTP server for pairline.

Single aiohttp application:
- /                          - Landing page
- /generate-code             - Issue a pairing code (POST)
- /getqr                     - Issue a pairing code with the link QR (POST)
- /status                    - Link state and live code count
- /health                    - Health check
- /api/pairing-status/{code} - Look up a code
- /api/pairing-linked/{code} - Confirm a code was linked (POST)
- /api/verify/{code}         - Verify and consume a code (POST)
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web

from pairline import __version__
from pairline.errors import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    NotReadyError,
    PairlineError,
)
from pairline.service import PairingService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidInputError: 400,
    NotFoundError: 404,
    InvalidTransitionError: 409,
    NotReadyError: 503,
}


class RateLimiter:
    """Simple sliding window rate limiter.

    Only keys with a request inside the window are kept. Idle keys are
    dropped by a sweep that runs at most once per window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._last_sweep = clock()
        self.requests: Dict[str, list] = {}

    def is_allowed(self, key: str) -> bool:
        now = self._clock()
        cutoff = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(cutoff)
            self._last_sweep = now

        recent = [t for t in self.requests.get(key, ()) if t > cutoff]
        allowed = len(recent) < self.max_requests
        if allowed:
            recent.append(now)

        if recent:
            self.requests[key] = recent
        else:
            self.requests.pop(key, None)
        return allowed

    def _sweep(self, cutoff: float) -> None:
        idle = [key for key, times in self.requests.items() if times[-1] <= cutoff]
        for key in idle:
            del self.requests[key]


def error_response(error: PairlineError) -> web.Response:
    """Map a PairlineError to a JSON rejection."""
    status = 500
    for error_type, error_status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            status = error_status
            break
    return web.json_response(
        {"success": False, "error": error.kind, "message": str(error)},
        status=status,
    )


@web.middleware
async def error_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Turn service errors into JSON rejections and hide internal ones."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except PairlineError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Unhandled error on {request.path}: {e}")
        return web.json_response(
            {"success": False, "error": "internal", "message": "Internal server error"},
            status=500,
        )


class PairingServer:
    """HTTP binding of the PairingService."""

    def __init__(
        self,
        service: PairingService,
        max_requests: int = 100,
        window_seconds: int = 900,
    ):
        """Initialize server.

        Args:
            service: Pairing service handling every request.
            max_requests: Requests allowed per client IP per window.
            window_seconds: Rate limit window.
        """
        self.service = service
        self._ip_limiter = RateLimiter(max_requests, window_seconds)
        self.app = web.Application(middlewares=[error_middleware])
        self._setup_routes()
        self._runner: Optional[web.AppRunner] = None

    def _setup_routes(self) -> None:
        self.app.router.add_get("/", self._handle_index)
        self.app.router.add_get("/health", self._handle_health)
        self.app.router.add_get("/status", self._handle_status)
        self.app.router.add_post("/generate-code", self._handle_generate_code)
        self.app.router.add_post("/getqr", self._handle_get_qr)
        self.app.router.add_get("/api/pairing-status/{code}", self._handle_lookup)
        self.app.router.add_post("/api/pairing-linked/{code}", self._handle_linked)
        self.app.router.add_post("/api/verify/{code}", self._handle_verify)

    def _rate_limited(self, request: web.Request) -> Optional[web.Response]:
        client_ip = request.remote or "unknown"
        if self._ip_limiter.is_allowed(client_ip):
            return None
        logger.warning(f"Rate limited {client_ip}")
        return web.json_response(
            {"success": False, "error": "rate_limited", "message": "Too many requests"},
            status=429,
        )

    async def _read_phone(self, request: web.Request) -> Optional[str]:
        """Read ``phoneNumber`` from a JSON or form body."""
        data: Any
        if request.content_type == "application/json":
            try:
                data = await request.json()
            except ValueError:
                raise InvalidInputError("Malformed JSON body")
            if not isinstance(data, dict):
                raise InvalidInputError("Request body must be an object")
        else:
            data = await request.post()

        phone = data.get("phoneNumber")
        if isinstance(phone, (str, int)) and not isinstance(phone, bool):
            return str(phone)
        return None

    async def _handle_index(self, request: web.Request) -> web.Response:
        return web.Response(text=LANDING_PAGE, content_type="text/html")

    async def _handle_health(self, request: web.Request) -> web.Response:
        report = self.service.get_status()
        return web.json_response(
            {
                "status": "running",
                "version": __version__,
                "bot": report.connection_state.value,
                "qrReady": report.has_qr,
                "codes": report.live_session_count,
            }
        )

    async def _handle_status(self, request: web.Request) -> web.Response:
        report = self.service.get_status()
        timestamp = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        return web.json_response({**report.to_dict(), "timestamp": timestamp})

    async def _handle_generate_code(self, request: web.Request) -> web.Response:
        limited = self._rate_limited(request)
        if limited:
            return limited

        phone = await self._read_phone(request)
        issued = await self.service.request_code(phone)
        return web.json_response(
            {"success": True, **issued.to_dict(), "message": "Code generated successfully"}
        )

    async def _handle_get_qr(self, request: web.Request) -> web.Response:
        limited = self._rate_limited(request)
        if limited:
            return limited

        phone = await self._read_phone(request)
        issued = await self.service.request_qr(phone)
        message = (
            "QR code ready for scanning"
            if issued.qr_image
            else "Link is online. Use the pairing code to link."
        )
        return web.json_response({"success": True, **issued.to_dict(), "message": message})

    async def _handle_lookup(self, request: web.Request) -> web.Response:
        limited = self._rate_limited(request)
        if limited:
            return limited

        session = self.service.lookup(request.match_info["code"])
        return web.json_response({"success": True, **session.to_dict()})

    async def _handle_linked(self, request: web.Request) -> web.Response:
        limited = self._rate_limited(request)
        if limited:
            return limited

        session = await self.service.mark_linked_by_code(request.match_info["code"])
        return web.json_response(
            {"success": True, "message": "Pairing marked as linked", **session.to_dict()}
        )

    async def _handle_verify(self, request: web.Request) -> web.Response:
        limited = self._rate_limited(request)
        if limited:
            return limited

        result = await self.service.verify_code(request.match_info["code"])
        return web.json_response({"success": True, **result.to_dict()})

    async def start(self, host: str, port: int) -> web.AppRunner:
        """Start serving.

        Args:
            host: Host to bind to.
            port: Port to bind to.

        Returns:
            App runner (for cleanup).
        """
        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, host, port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info(f"HTTP server started on {host}:{port}")
        return runner

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("HTTP server stopped")


LANDING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Device Pairing</title>
    <style>
        body {
            display: flex;
            align-items: center;
            justify-content: center;
            min-height: 100vh;
            margin: 0;
            background: #1a1a1a;
            color: #fff;
            font-family: system-ui, sans-serif;
        }
        main { max-width: 420px; width: 100%; padding: 24px; text-align: center; }
        input, button { font-size: 16px; padding: 12px; border-radius: 8px; border: none; }
        input { width: 60%; }
        button { background: #25d366; color: #fff; cursor: pointer; }
        button:disabled { background: #555; cursor: default; }
        #code { font-size: 32px; letter-spacing: 6px; margin: 20px 0; }
        #qr img { border: 10px solid white; border-radius: 10px; max-width: 260px; }
        .muted { color: #888; }
    </style>
</head>
<body>
<main>
    <h1>Link a Device</h1>
    <p class="muted">Status: <span id="state">unknown</span></p>
    <form id="pairing">
        <input id="phone" type="tel" name="phoneNumber" placeholder="723 278 526" required>
        <button id="generate" type="submit" disabled>Get code</button>
        <button id="getqr" type="button" disabled>Get QR</button>
    </form>
    <div id="code"></div>
    <div id="qr"></div>
    <p id="message" class="muted"></p>
</main>
<script>
    const ready = new Set(["qr_ready", "online"]);

    async function updateStatus() {
        try {
            const data = await (await fetch("/status")).json();
            document.getElementById("state").textContent = data.connectionState;
            const canIssue = ready.has(data.connectionState);
            document.getElementById("generate").disabled = !canIssue;
            document.getElementById("getqr").disabled = !canIssue;
        } catch (e) {
            document.getElementById("state").textContent = "offline";
        }
    }

    async function post(path) {
        const phoneNumber = document.getElementById("phone").value;
        const response = await fetch(path, {
            method: "POST",
            headers: {"Content-Type": "application/json"},
            body: JSON.stringify({phoneNumber}),
        });
        const data = await response.json();
        document.getElementById("message").textContent = data.message || "";
        document.getElementById("code").textContent = data.code || data.pairingCode || "";
        const qr = document.getElementById("qr");
        qr.innerHTML = data.qrImage ? `<img src="${data.qrImage}" alt="QR Code">` : "";
    }

    document.getElementById("pairing").addEventListener("submit", (event) => {
        event.preventDefault();
        post("/generate-code");
    });
    document.getElementById("getqr").addEventListener("click", () => post("/getqr"));

    updateStatus();
    setInterval(updateStatus, 3000);
</script>
</body>
</html>
"""
