"""Local HTTP listener that captures the OAuth redirect.

Google redirects the browser to ``http://localhost:<port>/auth/google/callback``
with ``state`` and ``code`` query parameters. The listener validates the
state and hands the code to the waiting flow through a one-shot future.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from drive_manager.config import CALLBACK_PATH, DEFAULT_CALLBACK_HOST, DEFAULT_CALLBACK_PORT
from drive_manager.exceptions import AuthorizationError
from drive_manager.google.exceptions import AuthorizationTimeout

logger = logging.getLogger(__name__)

SUCCESS_PAGE = """<html>
  <body>
    <h1>Successful authentication!</h1>
    <p>You can close this window and return to the terminal.</p>
  </body>
</html>
"""


class CallbackListener:
    """Short-lived HTTP server for the OAuth redirect.

    Usage:
        async with CallbackListener(state, port=8000) as listener:
            webbrowser.open(url)
            code = await listener.wait_for_code(timeout=300)

    The server is shut down when the context exits, whether a code arrived,
    the wait timed out, or an error was raised.
    """

    def __init__(
        self,
        expected_state: str,
        host: str = DEFAULT_CALLBACK_HOST,
        port: int = DEFAULT_CALLBACK_PORT,
        path: str = CALLBACK_PATH,
    ):
        """Initialize the listener.

        Args:
            expected_state: State token embedded in the authorization URL.
            host: Interface to bind.
            port: Port to bind. 0 picks a free port.
            path: Redirect path registered with the identity provider.
        """
        self.expected_state = expected_state
        self.host = host
        self.port = port
        self.path = path

        self.app = web.Application()
        self.app.router.add_get(path, self._handle_callback)

        self._runner: web.AppRunner | None = None
        self._code: asyncio.Future[str] | None = None

    @property
    def redirect_uri(self) -> str:
        """Redirect URI served by this listener."""
        return f"http://{self.host}:{self.port}{self.path}"

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    @property
    def has_code(self) -> bool:
        """Whether an authorization code has been delivered."""
        return self._code is not None and self._code.done() and not self._code.cancelled()

    async def _handle_callback(self, request: web.Request) -> web.StreamResponse:
        """Validate the redirect and deliver its code."""
        if request.query.get("state") != self.expected_state:
            logger.warning("Invalid oauth state on callback")
            return web.Response(text="Invalid oauth state", status=500)

        code = request.query.get("code")
        if code:
            logger.info("Received authorization code")
            response = web.Response(text=SUCCESS_PAGE, content_type="text/html")
            # Browser sees the confirmation before the flow moves on
            await response.prepare(request)
            await response.write_eof()
            self._deliver(code)
            return response

        error = request.query.get("error")
        if error:
            logger.warning(f"Authorization server returned error: {error}")
            return web.Response(text=f"Authorization failed: {error}", status=500)

        logger.warning("No code has been received")
        return web.Response(text="No code has been received!", status=500)

    def _deliver(self, code: str) -> None:
        if self._code is None or self._code.done():
            logger.warning("Ignoring additional authorization code")
            return
        self._code.set_result(code)

    async def start(self) -> None:
        """Bind the port and start serving.

        Raises:
            AuthorizationError: If the port cannot be bound.
        """
        self._code = asyncio.get_running_loop().create_future()
        self._runner = web.AppRunner(self.app, access_log=None)
        await self._runner.setup()

        site = web.TCPSite(self._runner, host=self.host, port=self.port)
        try:
            await site.start()
        except (OSError, OverflowError) as e:
            await self.stop()
            raise AuthorizationError(
                f"Unable to start callback listener on {self.host}:{self.port}: {e}"
            ) from e

        if self.port == 0:
            self.port = self._runner.addresses[0][1]
        logger.info(f"Callback listener started at {self.redirect_uri}")

    async def stop(self) -> None:
        """Shut the server down and release the port."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Callback listener stopped")
        if self._code is not None and not self._code.done():
            self._code.cancel()

    async def __aenter__(self) -> CallbackListener:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def wait_for_code(self, timeout: float | None = None) -> str:
        """Wait for the first valid authorization code.

        Args:
            timeout: Seconds to wait. None or 0 waits indefinitely.

        Returns:
            The authorization code.

        Raises:
            AuthorizationTimeout: If no code arrives in time.
        """
        if self._code is None:
            raise RuntimeError("Callback listener has not been started")

        try:
            return await asyncio.wait_for(asyncio.shield(self._code), timeout=timeout or None)
        except asyncio.TimeoutError:
            raise AuthorizationTimeout(timeout) from None
